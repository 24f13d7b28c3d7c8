"""Per-subject mark record model."""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    BigInteger,
    DateTime,
    Enum,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gradebook.core.database import Base
from gradebook.models.base import IDMixin, SchoolScopedMixin, TimestampMixin


class ReviewStatus(str, enum.Enum):
    """Review workflow state of a mark record."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    CORRECTION_REQUIRED = "correction_required"
    APPROVED = "approved"

    @classmethod
    def editable(cls) -> tuple["ReviewStatus", ...]:
        """States in which marks may still be re-entered."""
        return (cls.DRAFT, cls.CORRECTION_REQUIRED)

    @classmethod
    def counted(cls) -> tuple["ReviewStatus", ...]:
        """States whose marks contribute to term results."""
        return (cls.SUBMITTED, cls.APPROVED)


class PassingStatus(str, enum.Enum):
    """Subject-level pass/fail outcome."""

    PASS = "pass"
    FAIL = "fail"


class MarkRecord(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """One row per (exam, student, subject).

    percentage, grade and passing_status are always derived from the two
    marks columns by the grade policy; they are never entered directly.
    """

    __tablename__ = "student_subject_marks"

    exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("examinations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subject_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
    )
    class_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("classes.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    max_marks: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    marks_obtained: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(DECIMAL(5, 2), nullable=False)
    grade: Mapped[str] = mapped_column(String(10), nullable=False)
    passing_marks: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    passing_status: Mapped[PassingStatus] = mapped_column(
        Enum(PassingStatus),
        nullable=False,
    )
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    entered_by: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("staff.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Review workflow
    review_status: Mapped[ReviewStatus] = mapped_column(
        Enum(ReviewStatus),
        default=ReviewStatus.DRAFT,
        nullable=False,
        index=True,
    )
    reviewed_by: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("staff.id", ondelete="SET NULL"),
        nullable=True,
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    review_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships (display enrichment)
    student: Mapped["Student"] = relationship("Student", lazy="selectin")
    subject: Mapped["Subject"] = relationship("Subject", lazy="selectin")
    entered_by_staff: Mapped["Staff"] = relationship(
        "Staff",
        foreign_keys=[entered_by],
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint(
            "exam_id", "student_id", "subject_id",
            name="uq_marks_exam_student_subject",
        ),
    )

    @property
    def subject_name(self) -> str | None:
        return self.subject.name if self.subject else None

    @property
    def subject_color(self) -> str | None:
        return self.subject.color if self.subject else None

    @property
    def entered_by_name(self) -> str | None:
        return self.entered_by_staff.full_name if self.entered_by_staff else None

    def __repr__(self) -> str:
        return (
            f"<MarkRecord(exam_id={self.exam_id}, student_id={self.student_id}, "
            f"subject_id={self.subject_id}, status={self.review_status})>"
        )
