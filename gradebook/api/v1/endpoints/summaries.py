"""Exam summary endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from gradebook.core.database import get_db
from gradebook.core.dependencies import SchoolCtx
from gradebook.schemas.summary import ExamSummaryResponse, ReconcileRequest, ReconcileResult
from gradebook.services.summary import SummaryService

router = APIRouter()


@router.get("", response_model=list[ExamSummaryResponse])
def list_exam_summaries(
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
    exam_id: int = Query(..., description="Examination ID"),
    class_id: int = Query(..., description="Class ID"),
):
    """Summaries of a class for an exam, in rank order."""
    service = SummaryService(db)
    return service.list_cohort(context.school_id, exam_id, class_id)


@router.post("/reconcile", response_model=ReconcileResult)
def reconcile_summaries(
    request: ReconcileRequest,
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
):
    """Recompute this school's summaries from current marks."""
    service = SummaryService(db)
    return service.reconcile(school_id=context.school_id, exam_id=request.exam_id)
