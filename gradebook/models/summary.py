"""Per-student exam summary model."""

import enum
from decimal import Decimal

from sqlalchemy import DECIMAL, BigInteger, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gradebook.core.database import Base
from gradebook.models.base import IDMixin, SchoolScopedMixin, TimestampMixin


class ResultStatus(str, enum.Enum):
    """Overall exam outcome for a student."""

    PASS = "pass"
    FAIL = "fail"


class ExamSummary(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """Rollup of one student's marks for one exam. Derived, never hand-edited."""

    __tablename__ = "student_exam_summaries"

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
    class_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("classes.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    total_marks: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), nullable=False)
    total_max_marks: Mapped[Decimal] = mapped_column(DECIMAL(12, 2), nullable=False)
    overall_percentage: Mapped[Decimal] = mapped_column(DECIMAL(5, 2), nullable=False)
    overall_grade: Mapped[str] = mapped_column(String(10), nullable=False)
    result_status: Mapped[ResultStatus] = mapped_column(Enum(ResultStatus), nullable=False)
    subjects_passed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    subjects_failed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rank_in_class: Mapped[int | None] = mapped_column(Integer, nullable=True)

    student: Mapped["Student"] = relationship("Student", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("exam_id", "student_id", name="uq_summary_exam_student"),
    )

    @property
    def student_name(self) -> str | None:
        return self.student.student_name if self.student else None

    @property
    def admission_no(self) -> str | None:
        return self.student.admission_no if self.student else None

    def __repr__(self) -> str:
        return (
            f"<ExamSummary(exam_id={self.exam_id}, student_id={self.student_id}, "
            f"pct={self.overall_percentage}, rank={self.rank_in_class})>"
        )
