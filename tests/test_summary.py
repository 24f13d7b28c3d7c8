"""Tests for exam summaries, ranking and reconciliation."""

from decimal import Decimal

from sqlalchemy import select, update

from gradebook.models.marks import MarkRecord, ReviewStatus
from gradebook.models.summary import ExamSummary, ResultStatus
from gradebook.services.summary import SummaryService, ranking_key


def test_summary_is_marks_weighted_not_mean_of_percentages(db, seed, enter_marks):
    # Math 10/100 and English 0/50: 10/150
    enter_marks(seed.alice, {seed.math: 10, seed.english: 0})

    summary = SummaryService(db).get_summary(seed.school_id, seed.exam.id, seed.alice.id)

    assert summary.total_marks == Decimal("10.00")
    assert summary.total_max_marks == Decimal("150.00")
    assert summary.overall_percentage == Decimal("6.67")
    assert summary.overall_grade == "E"


def test_summary_ten_of_ten_and_zero_of_ninety(db, seed):
    from gradebook.services.marks import MarkService

    service = MarkService(db)
    service.upsert_marks(seed.school_id, seed.exam.id, seed.alice.id, seed.math.id, 10, 10)
    result = service.upsert_marks(seed.school_id, seed.exam.id, seed.alice.id, seed.science.id, 90, 0)

    assert result.summary.overall_percentage == Decimal("10.00")
    assert result.summary.subjects_passed == 1
    assert result.summary.subjects_failed == 1
    assert result.summary.result_status == ResultStatus.FAIL


def test_summary_passes_when_every_subject_passes(db, seed, enter_marks):
    enter_marks(seed.alice, {seed.math: 95, seed.science: 88, seed.english: 45})

    summary = SummaryService(db).get_summary(seed.school_id, seed.exam.id, seed.alice.id)

    assert summary.result_status == ResultStatus.PASS
    assert summary.subjects_passed == 3
    assert summary.overall_percentage == Decimal("91.20")
    assert summary.overall_grade == "A+"
    assert summary.rank_in_class is None


def test_recompute_without_marks_does_nothing(db, seed):
    assert SummaryService(db).recompute_summary(seed.school_id, seed.exam.id, seed.alice.id) is None


def test_rank_cohort_breaks_ties_by_admission_number(db, seed, enter_marks):
    # Alice (ADM003) and Chen (ADM002) tie on 80%; Bala leads
    enter_marks(seed.alice, {seed.math: 80, seed.science: 80, seed.english: 40})
    enter_marks(seed.bala, {seed.math: 90, seed.science: 90, seed.english: 45})
    enter_marks(seed.chen, {seed.math: 80, seed.science: 80, seed.english: 40})

    ranked = SummaryService(db).rank_cohort(seed.school_id, seed.exam.id, seed.class_a.id)

    assert [(s.student_id, s.rank_in_class) for s in ranked] == [
        (seed.bala.id, 1),
        (seed.chen.id, 2),
        (seed.alice.id, 3),
    ]


def test_ranking_key_puts_missing_admission_numbers_last():
    keys = sorted([
        ranking_key(Decimal("50"), None, 1),
        ranking_key(Decimal("50"), "B", 2),
        ranking_key(Decimal("50"), "A", 3),
        ranking_key(Decimal("70"), None, 4),
    ])
    assert [k[-1] for k in keys] == [4, 3, 2, 1]


def test_list_cohort_orders_ranked_first(db, seed, enter_marks):
    enter_marks(seed.alice, {seed.math: 40})
    enter_marks(seed.bala, {seed.math: 60})

    summaries = SummaryService(db).list_cohort(seed.school_id, seed.exam.id, seed.class_a.id)

    assert [s.student_id for s in summaries] == [seed.bala.id, seed.alice.id]
    assert summaries[0].student_name == "Bala"
    assert summaries[0].admission_no == "ADM001"


def test_reconcile_repairs_stale_summary(db, seed, enter_marks):
    enter_marks(seed.alice, {seed.math: 50, seed.science: 50})
    # A mark change whose summary recompute never happened
    db.execute(
        update(MarkRecord)
        .where(MarkRecord.student_id == seed.alice.id, MarkRecord.subject_id == seed.math.id)
        .values(marks_obtained=Decimal("90"))
    )

    result = SummaryService(db).reconcile(school_id=seed.school_id)

    assert result.summaries_recomputed == 1
    assert result.cohorts_ranked == 0
    summary = SummaryService(db).get_summary(seed.school_id, seed.exam.id, seed.alice.id)
    assert summary.total_marks == Decimal("140.00")


def test_reconcile_reranks_fully_approved_cohorts(db, seed, enter_marks):
    enter_marks(seed.alice, {seed.math: 50})
    enter_marks(seed.bala, {seed.math: 70})
    db.execute(update(MarkRecord).values(review_status=ReviewStatus.APPROVED))

    result = SummaryService(db).reconcile(exam_id=seed.exam.id)

    assert result.cohorts_ranked == 1
    ranks = dict(db.execute(select(ExamSummary.student_id, ExamSummary.rank_in_class)).all())
    assert ranks == {seed.bala.id: 1, seed.alice.id: 2}
