"""Grade policy: percentage, grade banding and pass/fail checks.

Pure functions with no error conditions. They run inline during bulk mark
ingestion, so bad input is coerced (to zero, or to "N/A" for grades) rather
than raised; range validation belongs to the mark store.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from gradebook.models.marks import PassingStatus

ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWO_PLACES = Decimal("0.01")

NOT_AVAILABLE = "N/A"

# Highest band first; lower bounds are inclusive
GRADE_BANDS: tuple[tuple[Decimal, str], ...] = (
    (Decimal("90"), "A+"),
    (Decimal("80"), "A"),
    (Decimal("70"), "B"),
    (Decimal("60"), "C"),
    (Decimal("50"), "D"),
)
LOWEST_GRADE = "E"


def parse_number(value: Any) -> Decimal | None:
    """Parse a number into a finite Decimal, or None if that is impossible."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def to_decimal(value: Any) -> Decimal:
    """Coerce a mark value to Decimal, defaulting to zero."""
    number = parse_number(value)
    return number if number is not None else ZERO


def round2(value: Any) -> Decimal:
    """Round half-up to 2 decimals, the convention for stored values."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def percentage(obtained: Any, max_marks: Any) -> Decimal:
    """obtained / max_marks * 100, or 0 when max_marks is not positive."""
    maximum = to_decimal(max_marks)
    if maximum <= 0:
        return ZERO
    return to_decimal(obtained) * HUNDRED / maximum


def grade_from_percentage(pct: Any) -> str:
    """Map a percentage to its letter grade."""
    value = parse_number(pct)
    if value is None:
        return NOT_AVAILABLE
    for lower_bound, grade in GRADE_BANDS:
        if value >= lower_bound:
            return grade
    return LOWEST_GRADE


def pass_status(obtained: Any, passing_marks: Any) -> PassingStatus:
    """Pass when obtained marks reach the passing threshold."""
    if to_decimal(obtained) >= to_decimal(passing_marks):
        return PassingStatus.PASS
    return PassingStatus.FAIL


def default_passing_marks(max_marks: Any, pass_percentage: Any = 40) -> Decimal:
    """Default threshold: pass_percentage of max marks, rounded to the nearest integer."""
    threshold = to_decimal(max_marks) * to_decimal(pass_percentage) / HUNDRED
    return threshold.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def overall_percentage(marks: Iterable[tuple[Any, Any]]) -> Decimal:
    """Marks-weighted percentage across subjects: sum(obtained) / sum(max) * 100.

    This is deliberately not the mean of per-subject percentages: 10/10 and
    0/90 give 10%, not 50%.
    """
    total_obtained = ZERO
    total_max = ZERO
    for obtained, max_marks in marks:
        total_obtained += to_decimal(obtained)
        total_max += to_decimal(max_marks)
    return percentage(total_obtained, total_max)
