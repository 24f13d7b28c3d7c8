"""Mark entry schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from gradebook.models.marks import PassingStatus, ReviewStatus
from gradebook.schemas.common import BaseSchema
from gradebook.schemas.summary import ExamSummaryResponse


# ==========================================
# Input
# ==========================================
# Row-level fields are optional on purpose: a bad row is reported in the
# bulk result instead of failing request validation for the whole batch.

class SubjectMarkInput(BaseSchema):
    """Marks for one subject of one student."""

    subject_id: int | None = None
    # Raw values such as "AB" are parsed by the mark store
    max_marks: Decimal | str | None = None
    marks_obtained: Decimal | str | None = None
    remarks: str | None = None


class StudentMarksInput(BaseSchema):
    """All subject marks for one student in a bulk batch."""

    student_id: int | None = None
    subjects: list[SubjectMarkInput] | None = None


class MarkEntryCreate(BaseSchema):
    """Single mark upsert."""

    exam_id: int
    student_id: int
    subject_id: int
    max_marks: Decimal | None = Field(None, description="Defaults to the exam subject's max marks")
    marks_obtained: Decimal
    remarks: str | None = None
    entered_by: int | None = None


class StudentMarksCreate(BaseSchema):
    """Upsert of several subjects for one student."""

    exam_id: int
    student_id: int
    subjects: list[SubjectMarkInput]
    entered_by: int | None = None


class BulkMarksCreate(BaseSchema):
    """Class-wide bulk mark entry."""

    exam_id: int
    class_id: int
    marks: list[StudentMarksInput]
    entered_by: int | None = None


# ==========================================
# Output
# ==========================================

class MarkRecordResponse(BaseSchema):
    """Mark record with display enrichment."""

    id: int
    school_id: int
    exam_id: int
    student_id: int
    subject_id: int
    class_id: int
    subject_name: str | None = None
    subject_color: str | None = None
    max_marks: Decimal
    marks_obtained: Decimal
    percentage: Decimal
    grade: str
    passing_marks: Decimal
    passing_status: PassingStatus
    remarks: str | None
    entered_by: int | None
    entered_by_name: str | None = None
    review_status: ReviewStatus
    reviewed_by: int | None
    reviewed_at: datetime | None
    review_remarks: str | None
    created_at: datetime
    updated_at: datetime


class BulkRowError(BaseSchema):
    """A rejected row of a bulk batch.

    row is the 1-based position of the subject entry in payload order;
    it is None for errors about a whole student entry.
    """

    row: int | None = None
    student_id: int | None = None
    subject_id: int | None = None
    error: str


class BulkMarksResponse(BaseSchema):
    """Partial-success result of a bulk mark upsert."""

    total_rows: int
    saved_count: int
    error_count: int
    saved: list[MarkRecordResponse] = []
    errors: list[BulkRowError] = []
    summaries: list[ExamSummaryResponse] = []
    warnings: list[str] = []
    message: str


class SingleMarkResponse(BaseSchema):
    """Result of a single mark upsert."""

    record: MarkRecordResponse
    summary: ExamSummaryResponse | None = None
