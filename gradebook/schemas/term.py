"""Term (weighted multi-exam) result schemas. Computed on demand, never stored."""

from decimal import Decimal

from gradebook.schemas.common import BaseSchema


class TermSubjectResult(BaseSchema):
    """Weighted result of one subject across the term's exams."""

    subject_id: int
    subject_name: str | None = None
    weighted_percentage: Decimal
    grade: str
    exams_counted: int


class TermStudentResult(BaseSchema):
    """Term result of one student."""

    student_id: int
    student_name: str
    roll_number: str | None = None
    admission_no: str | None = None
    overall_percentage: Decimal
    overall_grade: str
    rank_in_class: int
    subject_breakup: list[TermSubjectResult] = []


class TermResultResponse(BaseSchema):
    """Term results for a class, in rank order."""

    class_id: int
    term_id: int | None = None
    exam_ids: list[int]
    weights: list[Decimal]
    data: list[TermStudentResult] = []
    message: str | None = None


class ExamBreakupEntry(BaseSchema):
    """One counted mark inside a student's term report."""

    exam_id: int
    subject_id: int
    subject_name: str | None = None
    marks_obtained: Decimal
    max_marks: Decimal
    percentage: Decimal
    weight: Decimal


class StudentTermReport(BaseSchema):
    """Term report for a single student."""

    student_id: int
    term_id: int | None = None
    exam_ids: list[int]
    weights: list[Decimal]
    exam_breakup: list[ExamBreakupEntry] = []
    subject_breakup: list[TermSubjectResult] = []
    overall_percentage: Decimal
    overall_grade: str
