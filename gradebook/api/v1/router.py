"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from gradebook.api.v1.endpoints import marks, review, summaries, terms
from gradebook.schemas.common import ErrorResponse

# Error envelope documented on every school-scoped route
ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Exam, class, student or term not found"},
    409: {"model": ErrorResponse, "description": "Workflow precondition failed"},
    422: {"model": ErrorResponse, "description": "Validation error"},
}

api_router = APIRouter(responses=ERROR_RESPONSES)

# Mark entry (school-scoped)
api_router.include_router(
    marks.router,
    prefix="/marks",
    tags=["Marks"],
)

# Exam summaries and ranks (school-scoped)
api_router.include_router(
    summaries.router,
    prefix="/summaries",
    tags=["Summaries"],
)

# Review workflow (school-scoped)
api_router.include_router(
    review.router,
    prefix="/review",
    tags=["Review"],
)

# Term results (school-scoped, computed on demand)
api_router.include_router(
    terms.router,
    prefix="/terms",
    tags=["Terms"],
)
