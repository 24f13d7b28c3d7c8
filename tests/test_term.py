"""Tests for weighted term results."""

from decimal import Decimal

import pytest
from sqlalchemy import update

from gradebook.core.exceptions import NotFoundError, PreconditionError, ValidationError
from gradebook.models import ExamTermMapping, SchoolClass
from gradebook.models.marks import MarkRecord, ReviewStatus
from gradebook.services.term import TermCalculator


def _submit_all(db):
    db.execute(update(MarkRecord).values(review_status=ReviewStatus.SUBMITTED))


@pytest.fixture
def term_marks(db, seed, enter_marks):
    """
    Alice: Math 50% (exam 1) and 80% (exam 3), nothing in exam 2;
    Science 100% in exam 1 only.
    Bala: Math 90% in all three exams.
    """
    exam1, exam2, exam3 = seed.exams
    enter_marks(seed.alice, {seed.math: 50, seed.science: 100}, exam=exam1)
    enter_marks(seed.alice, {seed.math: 80}, exam=exam3)
    for exam in (exam1, exam2, exam3):
        enter_marks(seed.bala, {seed.math: 90}, exam=exam)
    _submit_all(db)


def _exam_ids(seed):
    return [e.id for e in seed.exams]


def test_weights_must_sum_to_100(db, seed, term_marks):
    with pytest.raises(PreconditionError):
        TermCalculator(db).compute_term(seed.school_id, seed.class_a.id, _exam_ids(seed), [20, 20, 50])


def test_weight_sum_within_tolerance_is_accepted(db, seed, term_marks):
    result = TermCalculator(db).compute_term(
        seed.school_id, seed.class_a.id, _exam_ids(seed),
        [Decimal("33.33"), Decimal("33.33"), Decimal("33.33")],
    )
    assert len(result.data) == 3


@pytest.mark.parametrize(
    "exam_ids, weights",
    [
        ([], []),
        ([1, 2], [100]),
        ([1, 1], [50, 50]),
        ([1, 2], [150, -50]),
        ([1, 2, 3], ["NaN", 40, 60]),
        ([1, 2, 3], ["Infinity", 40, 60]),
        ([1, 2], ["heavy", 100]),
    ],
)
def test_malformed_exam_and_weight_lists(db, seed, exam_ids, weights):
    with pytest.raises(ValidationError):
        TermCalculator(db).compute_term(seed.school_id, seed.class_a.id, exam_ids, weights)


def test_unknown_class_or_exam(db, seed):
    calculator = TermCalculator(db)
    with pytest.raises(NotFoundError):
        calculator.compute_term(seed.school_id, 9999, _exam_ids(seed), [20, 20, 60])
    with pytest.raises(NotFoundError):
        calculator.compute_term(seed.school_id, seed.class_a.id, [seed.exam.id, 9999], [50, 50])


def test_missing_exam_renormalizes_instead_of_counting_zero(db, seed, term_marks):
    result = TermCalculator(db).compute_term(seed.school_id, seed.class_a.id, _exam_ids(seed), [20, 20, 60])

    alice = next(r for r in result.data if r.student_id == seed.alice.id)
    subjects = {s.subject_id: s for s in alice.subject_breakup}
    # (50 * 0.2 + 80 * 0.6) / 0.8
    assert subjects[seed.math.id].weighted_percentage == Decimal("72.50")
    assert subjects[seed.math.id].exams_counted == 2
    assert subjects[seed.science.id].weighted_percentage == Decimal("100.00")
    # Mean of subject results, not of exams
    assert alice.overall_percentage == Decimal("86.25")
    assert alice.overall_grade == "A"


def test_term_ranks_students_and_puts_students_without_marks_last(db, seed, term_marks):
    result = TermCalculator(db).compute_term(seed.school_id, seed.class_a.id, _exam_ids(seed), [20, 20, 60])

    assert [(r.student_id, r.rank_in_class) for r in result.data] == [
        (seed.bala.id, 1),
        (seed.alice.id, 2),
        (seed.chen.id, 3),
    ]
    chen = result.data[2]
    assert chen.subject_breakup == []
    assert chen.overall_grade == "N/A"
    # Inactive students are not part of the term cohort
    assert seed.dropped.id not in {r.student_id for r in result.data}


def test_draft_marks_never_count(db, seed, term_marks, enter_marks):
    enter_marks(seed.chen, {seed.math: 100}, exam=seed.exams[0])

    result = TermCalculator(db).compute_term(seed.school_id, seed.class_a.id, _exam_ids(seed), [20, 20, 60])

    chen = next(r for r in result.data if r.student_id == seed.chen.id)
    assert chen.subject_breakup == []


def test_empty_roster(db, seed):
    empty = SchoolClass(school_id=seed.school_id, class_name="9", section="C", academic_year="2025-26")
    db.add(empty)
    db.flush()

    result = TermCalculator(db).compute_term(seed.school_id, empty.id, _exam_ids(seed), [20, 20, 60])

    assert result.data == []
    assert result.message == "No students in this class"


def test_stored_term_matches_explicit_weights(db, seed, term_marks):
    calculator = TermCalculator(db)

    stored = calculator.compute_stored_term(seed.school_id, seed.class_a.id, seed.term.id)
    explicit = calculator.compute_term(seed.school_id, seed.class_a.id, _exam_ids(seed), [20, 20, 60])

    assert stored.term_id == seed.term.id
    assert stored.data == explicit.data


def test_stored_term_without_active_exams(db, seed):
    db.execute(update(ExamTermMapping).values(is_active=False))
    db.expire_all()

    with pytest.raises(PreconditionError):
        TermCalculator(db).compute_stored_term(seed.school_id, seed.class_a.id, seed.term.id)


def test_student_term_report(db, seed, term_marks):
    report = TermCalculator(db).student_term_report(
        seed.school_id, seed.alice.id, _exam_ids(seed), [20, 20, 60],
    )

    assert len(report.exam_breakup) == 3
    math_entries = [e for e in report.exam_breakup if e.subject_id == seed.math.id]
    assert [e.percentage for e in math_entries] == [Decimal("50.00"), Decimal("80.00")]
    assert [e.weight for e in math_entries] == [Decimal("20"), Decimal("60")]
    assert report.overall_percentage == Decimal("86.25")
