"""Student roster model."""

import enum

from sqlalchemy import BigInteger, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gradebook.core.database import Base
from gradebook.models.base import IDMixin, SchoolScopedMixin, TimestampMixin


class StudentStatus(str, enum.Enum):
    """Enrollment status of a student."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    TRANSFERRED = "transferred"
    GRADUATED = "graduated"


class Student(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """Student model, owned by the admissions module and read here as a roster."""

    __tablename__ = "students"

    class_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("classes.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    student_name: Mapped[str] = mapped_column(String(255), nullable=False)
    roll_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    admission_no: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[StudentStatus] = mapped_column(
        Enum(StudentStatus),
        default=StudentStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    # Relationships
    school_class: Mapped["SchoolClass"] = relationship(
        "SchoolClass",
        back_populates="students",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, name={self.student_name}, class_id={self.class_id})>"
