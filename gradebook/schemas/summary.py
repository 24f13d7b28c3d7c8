"""Exam summary schemas."""

from datetime import datetime
from decimal import Decimal

from gradebook.models.summary import ResultStatus
from gradebook.schemas.common import BaseSchema


class ExamSummaryResponse(BaseSchema):
    """Per-student exam rollup."""

    id: int
    exam_id: int
    student_id: int
    class_id: int
    student_name: str | None = None
    admission_no: str | None = None
    total_marks: Decimal
    total_max_marks: Decimal
    overall_percentage: Decimal
    overall_grade: str
    result_status: ResultStatus
    subjects_passed: int
    subjects_failed: int
    rank_in_class: int | None
    updated_at: datetime


class ReconcileRequest(BaseSchema):
    """Scope of a summary reconciliation pass."""

    exam_id: int | None = None


class ReconcileResult(BaseSchema):
    """Outcome of a summary reconciliation pass."""

    summaries_recomputed: int
    cohorts_ranked: int
    message: str
