"""Examination definition models."""

from datetime import date
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    BigInteger,
    Boolean,
    Date,
    ForeignKey,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gradebook.core.database import Base
from gradebook.models.base import IDMixin, SchoolScopedMixin, TimestampMixin


class Examination(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """An assessment event sat by one or more classes."""

    __tablename__ = "examinations"

    exam_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    academic_year: Mapped[str | None] = mapped_column(String(20), nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    subject_mappings: Mapped[list["ExamSubjectMapping"]] = relationship(
        "ExamSubjectMapping",
        back_populates="exam",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Examination(id={self.id}, name={self.exam_name})>"


class ExamSubjectMapping(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """Subjects (and their max/pass marks) that make up an exam.

    A mapping with no class_id applies to every class sitting the exam.
    """

    __tablename__ = "exam_subject_mappings"

    exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("examinations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    class_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("classes.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    subject_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
    )
    max_marks: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    pass_marks: Mapped[Decimal | None] = mapped_column(DECIMAL(10, 2), nullable=True)

    exam: Mapped["Examination"] = relationship(
        "Examination",
        back_populates="subject_mappings",
    )

    __table_args__ = (
        UniqueConstraint(
            "exam_id", "class_id", "subject_id",
            name="uq_exam_class_subject",
        ),
    )

    def __repr__(self) -> str:
        return f"<ExamSubjectMapping(exam_id={self.exam_id}, subject_id={self.subject_id})>"


class Term(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """A stored combination of weighted exams."""

    __tablename__ = "terms"

    term_name: Mapped[str] = mapped_column(String(255), nullable=False)
    academic_year: Mapped[str | None] = mapped_column(String(20), nullable=True)

    exam_mappings: Mapped[list["ExamTermMapping"]] = relationship(
        "ExamTermMapping",
        back_populates="term",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ExamTermMapping.id",
    )

    def __repr__(self) -> str:
        return f"<Term(id={self.id}, name={self.term_name})>"


class ExamTermMapping(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """Weight (0-100) of one exam inside a term."""

    __tablename__ = "exam_term_mappings"

    term_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("terms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exam_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("examinations.id", ondelete="CASCADE"),
        nullable=False,
    )
    weightage: Mapped[Decimal] = mapped_column(DECIMAL(5, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    term: Mapped["Term"] = relationship("Term", back_populates="exam_mappings")

    __table_args__ = (
        UniqueConstraint("term_id", "exam_id", name="uq_term_exam"),
    )
