"""Review workflow schemas."""

from decimal import Decimal

from pydantic import Field

from gradebook.models.marks import ReviewStatus
from gradebook.schemas.common import BaseSchema


class ReviewSubmitRequest(BaseSchema):
    """Submit a class's (or some students') marks for review."""

    exam_id: int
    class_id: int
    student_ids: list[int] | None = Field(
        None, description="Students to submit. Defaults to the class's active roster."
    )


class ReviewDecisionRequest(BaseSchema):
    """Approve or reject a cohort's submitted marks."""

    exam_id: int
    class_id: int
    reviewed_by: int | None = None
    remarks: str | None = None


class IncompleteStudent(BaseSchema):
    """A student whose marks do not cover every required subject."""

    student_id: int
    missing_subject_ids: list[int]


class ReviewResult(BaseSchema):
    """Outcome of a workflow transition."""

    action: str
    exam_id: int
    class_id: int
    status: ReviewStatus
    updated_count: int
    ranked_count: int = 0
    warnings: list[str] = []
    message: str


class PendingSubjectMark(BaseSchema):
    """One subject awaiting review."""

    subject_id: int
    subject_name: str | None = None
    marks_obtained: Decimal
    max_marks: Decimal
    review_status: ReviewStatus


class PendingStudentMarks(BaseSchema):
    """Marks awaiting review, grouped by student."""

    exam_id: int
    class_id: int
    student_id: int
    student_name: str | None = None
    admission_no: str | None = None
    roll_number: str | None = None
    review_status: ReviewStatus
    marks: list[PendingSubjectMark] = []
    total_marks: Decimal
    total_max_marks: Decimal


class PendingReviewResponse(BaseSchema):
    """Pending review listing."""

    data: list[PendingStudentMarks]
    total_students: int
