"""Roster and exam-definition lookups consumed by the grading engine."""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from gradebook.core.exceptions import NotFoundError
from gradebook.models.academic import SchoolClass, Subject
from gradebook.models.exam import ExamSubjectMapping, Examination, Term
from gradebook.models.student import Student, StudentStatus


class RosterProvider:
    """Read-only access to classes and students."""

    def __init__(self, db: Session):
        self.db = db

    def get_class(self, school_id: int, class_id: int) -> SchoolClass:
        """Get class by ID, validating school membership."""
        result = self.db.execute(
            select(SchoolClass).where(
                SchoolClass.id == class_id,
                SchoolClass.school_id == school_id,
            )
        )
        school_class = result.scalar_one_or_none()
        if not school_class:
            raise NotFoundError("Class", str(class_id))
        return school_class

    def get_student(self, school_id: int, student_id: int) -> Student:
        """Get student by ID, validating school membership."""
        result = self.db.execute(
            select(Student).where(
                Student.id == student_id,
                Student.school_id == school_id,
            )
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", str(student_id))
        return student

    def get_students(self, school_id: int, student_ids: list[int]) -> dict[int, Student]:
        """Get students by ID; unknown IDs are simply absent from the result."""
        if not student_ids:
            return {}
        result = self.db.execute(
            select(Student).where(
                Student.school_id == school_id,
                Student.id.in_(set(student_ids)),
            )
        )
        return {s.id: s for s in result.scalars().all()}

    def list_active_students(
        self,
        school_id: int,
        class_id: int,
        academic_year: str | None = None,
    ) -> list[Student]:
        """Active students of a class, ordered by roll number then name.

        academic_year defaults to the class's own academic year.
        """
        if academic_year is None:
            academic_year = self.get_class(school_id, class_id).academic_year

        result = self.db.execute(
            select(Student)
            .where(
                Student.school_id == school_id,
                Student.class_id == class_id,
                Student.academic_year == academic_year,
                Student.status == StudentStatus.ACTIVE,
            )
            .order_by(Student.roll_number.asc().nulls_last(), Student.student_name, Student.id)
        )
        return list(result.scalars().all())


class ExamDefinitionProvider:
    """Read-only access to exams, their subject mappings and stored terms."""

    def __init__(self, db: Session):
        self.db = db

    def get_exam(self, school_id: int, exam_id: int) -> Examination:
        """Get examination by ID, validating school membership."""
        result = self.db.execute(
            select(Examination).where(
                Examination.id == exam_id,
                Examination.school_id == school_id,
            )
        )
        exam = result.scalar_one_or_none()
        if not exam:
            raise NotFoundError("Examination", str(exam_id))
        return exam

    def get_exams(self, school_id: int, exam_ids: list[int]) -> list[Examination]:
        """Get several exams, failing on the first unknown ID."""
        result = self.db.execute(
            select(Examination).where(
                Examination.school_id == school_id,
                Examination.id.in_(set(exam_ids)),
            )
        )
        found = {e.id: e for e in result.scalars().all()}
        for exam_id in exam_ids:
            if exam_id not in found:
                raise NotFoundError("Examination", str(exam_id))
        return [found[exam_id] for exam_id in exam_ids]

    def exam_subjects(
        self,
        school_id: int,
        exam_id: int,
        class_id: int | None = None,
    ) -> list[ExamSubjectMapping]:
        """Subjects an exam requires, with max and passing marks.

        With a class_id, class-specific mappings override the exam-wide
        (class_id NULL) mapping of the same subject.
        """
        query = select(ExamSubjectMapping).where(
            ExamSubjectMapping.school_id == school_id,
            ExamSubjectMapping.exam_id == exam_id,
        )
        if class_id is not None:
            query = query.where(
                (ExamSubjectMapping.class_id == class_id)
                | (ExamSubjectMapping.class_id.is_(None))
            )
        result = self.db.execute(query.order_by(ExamSubjectMapping.id))

        by_subject: dict[int, ExamSubjectMapping] = {}
        for mapping in result.scalars().all():
            current = by_subject.get(mapping.subject_id)
            if current is None or (current.class_id is None and mapping.class_id is not None):
                by_subject[mapping.subject_id] = mapping
        return list(by_subject.values())

    def get_subject_mapping(
        self,
        school_id: int,
        exam_id: int,
        subject_id: int,
        class_id: int | None = None,
    ) -> ExamSubjectMapping | None:
        """The mapping that applies to one subject of an exam, if configured."""
        for mapping in self.exam_subjects(school_id, exam_id, class_id):
            if mapping.subject_id == subject_id:
                return mapping
        return None

    def exam_subject_passing_marks(
        self,
        school_id: int,
        exam_id: int,
        subject_id: int,
        class_id: int | None = None,
    ) -> Decimal | None:
        """Configured passing marks for an exam subject, or None."""
        mapping = self.get_subject_mapping(school_id, exam_id, subject_id, class_id)
        return mapping.pass_marks if mapping else None

    def get_term(self, school_id: int, term_id: int) -> Term:
        """Get stored term by ID, validating school membership."""
        result = self.db.execute(
            select(Term).where(
                Term.id == term_id,
                Term.school_id == school_id,
            )
        )
        term = result.scalar_one_or_none()
        if not term:
            raise NotFoundError("Term", str(term_id))
        return term

    def get_subject(self, school_id: int, subject_id: int) -> Subject:
        """Get subject by ID, validating school membership."""
        result = self.db.execute(
            select(Subject).where(
                Subject.id == subject_id,
                Subject.school_id == school_id,
            )
        )
        subject = result.scalar_one_or_none()
        if not subject:
            raise NotFoundError("Subject", str(subject_id))
        return subject

    def subject_names(self, school_id: int, subject_ids: set[int]) -> dict[int, str]:
        """Display names for subjects."""
        if not subject_ids:
            return {}
        result = self.db.execute(
            select(Subject.id, Subject.name).where(
                Subject.school_id == school_id,
                Subject.id.in_(subject_ids),
            )
        )
        return {row[0]: row[1] for row in result.all()}
