"""Mark entry endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from gradebook.core.database import get_db
from gradebook.core.dependencies import SchoolCtx
from gradebook.models.marks import ReviewStatus
from gradebook.schemas.marks import (
    BulkMarksCreate,
    BulkMarksResponse,
    MarkEntryCreate,
    MarkRecordResponse,
    SingleMarkResponse,
    StudentMarksCreate,
)
from gradebook.services.marks import MarkService

router = APIRouter()


@router.get("", response_model=list[MarkRecordResponse])
def get_student_marks(
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
    exam_id: int = Query(..., description="Examination ID"),
    student_id: int = Query(..., description="Student ID"),
):
    """All subject marks of a student for an exam."""
    service = MarkService(db)
    return service.fetch_for_student_exam(context.school_id, exam_id, student_id)


@router.get("/cohort", response_model=list[MarkRecordResponse])
def get_cohort_marks(
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
    exam_id: int = Query(..., description="Examination ID"),
    class_id: int = Query(..., description="Class ID"),
    review_status: ReviewStatus | None = Query(None, description="Filter by review status"),
):
    """Marks of a whole class for an exam."""
    service = MarkService(db)
    statuses = (review_status,) if review_status else None
    records = service.list_for_cohort(context.school_id, exam_id, class_id, statuses)
    return [MarkRecordResponse.model_validate(r) for r in records]


@router.post("", response_model=BulkMarksResponse)
def save_student_marks(
    request: StudentMarksCreate,
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Save several subject marks for one student.
    Invalid subjects are reported in errors; the rest are saved.
    """
    service = MarkService(db)
    return service.upsert_many_for_student(
        context.school_id,
        request.exam_id,
        request.student_id,
        request.subjects,
        entered_by=request.entered_by or context.staff_id,
    )


@router.post("/bulk", response_model=BulkMarksResponse)
def save_class_marks(
    request: BulkMarksCreate,
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Save marks for many students of a class.
    Rows are validated independently: one bad row never blocks the others.
    """
    service = MarkService(db)
    return service.upsert_many_for_class(
        context.school_id,
        request.exam_id,
        request.class_id,
        request.marks,
        entered_by=request.entered_by or context.staff_id,
    )


@router.put("/entry", response_model=SingleMarkResponse)
def save_mark_entry(
    request: MarkEntryCreate,
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
):
    """Create or update a single subject mark."""
    service = MarkService(db)
    return service.upsert_marks(
        context.school_id,
        request.exam_id,
        request.student_id,
        request.subject_id,
        request.max_marks,
        request.marks_obtained,
        remarks=request.remarks,
        entered_by=request.entered_by or context.staff_id,
    )
