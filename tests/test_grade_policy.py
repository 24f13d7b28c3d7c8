"""Tests for percentage, grade and pass/fail rules."""

from decimal import Decimal

import pytest

from gradebook.models.marks import PassingStatus
from gradebook.services import grade_policy


@pytest.mark.parametrize(
    "pct, grade",
    [
        (Decimal("100"), "A+"),
        (Decimal("90"), "A+"),
        (Decimal("89.99"), "A"),
        (Decimal("80"), "A"),
        (Decimal("79.99"), "B"),
        (Decimal("70"), "B"),
        (Decimal("60"), "C"),
        (Decimal("50"), "D"),
        (Decimal("49.99"), "E"),
        (Decimal("0"), "E"),
    ],
)
def test_grade_band_boundaries(pct, grade):
    assert grade_policy.grade_from_percentage(pct) == grade


@pytest.mark.parametrize("bad", [None, "abc", float("nan"), Decimal("Infinity")])
def test_grade_of_non_numeric_is_not_available(bad):
    assert grade_policy.grade_from_percentage(bad) == "N/A"


def test_percentage():
    assert grade_policy.percentage(45, 50) == Decimal("90")
    assert grade_policy.round2(grade_policy.percentage(2, 3)) == Decimal("66.67")


@pytest.mark.parametrize("max_marks", [0, -10, None, "x"])
def test_percentage_with_non_positive_max_is_zero(max_marks):
    assert grade_policy.percentage(10, max_marks) == Decimal("0")


def test_round2_is_half_up():
    assert grade_policy.round2(Decimal("66.665")) == Decimal("66.67")
    assert grade_policy.round2(Decimal("0.005")) == Decimal("0.01")


def test_pass_status_threshold_is_inclusive():
    assert grade_policy.pass_status(20, 20) == PassingStatus.PASS
    assert grade_policy.pass_status(Decimal("19.5"), 20) == PassingStatus.FAIL


def test_default_passing_marks_rounds_to_integer():
    assert grade_policy.default_passing_marks(100) == Decimal("40")
    assert grade_policy.default_passing_marks(25) == Decimal("10")
    # 40% of 33 is 13.2
    assert grade_policy.default_passing_marks(33) == Decimal("13")
    # 35% of 45 is 15.75
    assert grade_policy.default_passing_marks(45, 35) == Decimal("16")


def test_overall_percentage_weights_by_max_marks():
    # 10/10 and 0/90 is 10%, not the 50% mean of subject percentages
    overall = grade_policy.overall_percentage([(10, 10), (0, 90)])
    assert overall == Decimal("10")


def test_overall_percentage_without_marks_is_zero():
    assert grade_policy.overall_percentage([]) == Decimal("0")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("72.5", Decimal("72.5")),
        (" 40 ", Decimal("40")),
        (15, Decimal("15")),
        ("AB", None),
        ("NaN", None),
        ("Infinity", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_number_accepts_only_finite_numbers(raw, expected):
    assert grade_policy.parse_number(raw) == expected
