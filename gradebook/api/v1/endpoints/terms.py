"""Term result endpoints."""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from gradebook.core.database import get_db
from gradebook.core.dependencies import SchoolCtx
from gradebook.core.exceptions import ValidationError
from gradebook.schemas.term import StudentTermReport, TermResultResponse
from gradebook.services import grade_policy
from gradebook.services.term import TermCalculator

router = APIRouter()


def _split_ids(raw: str, name: str) -> list[int]:
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise ValidationError(f"{name} must be comma-separated integers", details={name: raw})


def _split_weights(raw: str) -> list[Decimal]:
    weights = [grade_policy.parse_number(part) for part in raw.split(",") if part.strip()]
    if any(weight is None for weight in weights):
        raise ValidationError("weights must be comma-separated numbers", details={"weights": raw})
    return weights


@router.get("/calculate", response_model=TermResultResponse)
def calculate_term(
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
    class_id: int = Query(..., description="Class ID"),
    exam_ids: str = Query(..., description="Comma-separated exam IDs, e.g. 1,2,3"),
    weights: str = Query(..., description="Comma-separated weights summing to 100, e.g. 20,20,60"),
):
    """
    Weighted term result for a class.
    Only submitted and approved marks are counted.
    """
    calculator = TermCalculator(db)
    return calculator.compute_term(
        context.school_id,
        class_id,
        _split_ids(exam_ids, "exam_ids"),
        _split_weights(weights),
    )


@router.get("/report-card", response_model=StudentTermReport)
def student_report_card(
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
    student_id: int = Query(..., description="Student ID"),
    term_id: int | None = Query(None, description="Stored term; overrides exam_ids/weights"),
    exam_ids: str | None = Query(None, description="Comma-separated exam IDs"),
    weights: str | None = Query(None, description="Comma-separated weights"),
):
    """Term report for one student, with exam-wise and subject-wise breakup."""
    calculator = TermCalculator(db)
    if term_id is not None:
        ids, parsed_weights = calculator.term_weights(context.school_id, term_id)
    elif exam_ids and weights:
        ids, parsed_weights = _split_ids(exam_ids, "exam_ids"), _split_weights(weights)
    else:
        raise ValidationError("Provide term_id, or both exam_ids and weights")
    return calculator.student_term_report(
        context.school_id, student_id, ids, parsed_weights, term_id=term_id
    )


@router.get("/{term_id}/calculate", response_model=TermResultResponse)
def calculate_stored_term(
    term_id: int,
    context: SchoolCtx,
    db: Annotated[Session, Depends(get_db)],
    class_id: int = Query(..., description="Class ID"),
):
    """Term result using a stored term's exams and weights."""
    calculator = TermCalculator(db)
    return calculator.compute_stored_term(context.school_id, class_id, term_id)
