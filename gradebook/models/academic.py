"""Reference models for classes, subjects and staff."""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gradebook.core.database import Base
from gradebook.models.base import IDMixin, SchoolScopedMixin, TimestampMixin


class SchoolClass(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """A class-section for one academic year."""

    __tablename__ = "classes"

    class_name: Mapped[str] = mapped_column(String(50), nullable=False)  # 'class' is reserved keyword
    section: Mapped[str | None] = mapped_column(String(50), nullable=True)
    academic_year: Mapped[str] = mapped_column(String(20), nullable=False)

    students: Mapped[list["Student"]] = relationship(
        "Student",
        back_populates="school_class",
        lazy="select",
    )

    __table_args__ = (
        UniqueConstraint(
            "school_id", "class_name", "section", "academic_year",
            name="uq_class_section_year",
        ),
    )

    @property
    def class_section(self) -> str:
        """Combined class-section like '10-A'."""
        return f"{self.class_name}-{self.section}" if self.section else self.class_name

    def __repr__(self) -> str:
        return f"<SchoolClass(id={self.id}, class={self.class_section}, year={self.academic_year})>"


class Subject(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """Subject taught at a school. Name and color are display-only."""

    __tablename__ = "subjects"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<Subject(id={self.id}, name={self.name})>"


class Staff(Base, IDMixin, TimestampMixin, SchoolScopedMixin):
    """Staff member who enters or reviews marks."""

    __tablename__ = "staff"

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    staff_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<Staff(id={self.id}, name={self.full_name})>"
