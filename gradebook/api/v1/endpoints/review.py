"""Review workflow endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from gradebook.core.database import get_db
from gradebook.core.dependencies import SchoolCtx
from gradebook.schemas.review import (
    PendingReviewResponse,
    ReviewDecisionRequest,
    ReviewResult,
    ReviewSubmitRequest,
)
from gradebook.services.review import ReviewService

router = APIRouter()


@router.post("/submit", response_model=ReviewResult)
def submit_marks(
    request: ReviewSubmitRequest,
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Submit marks for review.
    Rejected with 409 if any targeted student is missing a required subject.
    """
    service = ReviewService(db)
    return service.submit(
        context.school_id, request.exam_id, request.class_id, request.student_ids
    )


@router.post("/approve", response_model=ReviewResult)
def approve_marks(
    request: ReviewDecisionRequest,
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
):
    """Approve submitted marks and rank the class."""
    service = ReviewService(db)
    return service.approve(
        context.school_id,
        request.exam_id,
        request.class_id,
        reviewed_by=request.reviewed_by or context.staff_id,
        remarks=request.remarks,
    )


@router.post("/reject", response_model=ReviewResult)
def reject_marks(
    request: ReviewDecisionRequest,
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
):
    """Return submitted marks for correction."""
    service = ReviewService(db)
    return service.reject(
        context.school_id,
        request.exam_id,
        request.class_id,
        reviewed_by=request.reviewed_by or context.staff_id,
        remarks=request.remarks,
    )


@router.get("/pending", response_model=PendingReviewResponse)
def list_pending_reviews(
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
    exam_id: int | None = Query(None, description="Filter by examination"),
    class_id: int | None = Query(None, description="Filter by class"),
):
    """Marks waiting for review or correction, grouped by student."""
    service = ReviewService(db)
    return service.list_pending(context.school_id, exam_id=exam_id, class_id=class_id)
