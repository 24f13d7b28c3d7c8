"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Header

from gradebook.core.exceptions import ValidationError


class SchoolContext:
    """Tenant scope of a request and the staff member acting, if known."""

    def __init__(self, school_id: int, staff_id: int | None = None):
        self.school_id = school_id
        self.staff_id = staff_id


def _parse_id(value: str, header: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise ValidationError(f"{header} must be an integer", details={header: value})
    if parsed <= 0:
        raise ValidationError(f"{header} must be positive", details={header: value})
    return parsed


def get_school_context(
    x_school_id: str = Header(..., description="School ID"),
    x_staff_id: str | None = Header(None, description="Acting staff ID"),
) -> SchoolContext:
    """Resolve the school scope from request headers."""
    school_id = _parse_id(x_school_id, "X-School-Id")
    staff_id = _parse_id(x_staff_id, "X-Staff-Id") if x_staff_id else None
    return SchoolContext(school_id=school_id, staff_id=staff_id)


SchoolCtx = Annotated[SchoolContext, Depends(get_school_context)]
