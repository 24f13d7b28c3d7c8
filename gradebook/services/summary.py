"""Exam summary aggregation and class ranking."""

import logging
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from gradebook.core.upsert import build_upsert
from gradebook.models.marks import MarkRecord, PassingStatus, ReviewStatus
from gradebook.models.student import Student
from gradebook.models.summary import ExamSummary, ResultStatus
from gradebook.schemas.summary import ExamSummaryResponse, ReconcileResult
from gradebook.services import grade_policy

logger = logging.getLogger(__name__)


def ranking_key(percentage: Decimal, admission_no: str | None, student_id: int) -> tuple:
    """Sort key for class ranks.

    Percentage descending; ties go to the lower admission number (students
    without one come last), then the lower student ID. Every student gets
    a distinct rank.
    """
    return (-percentage, admission_no is None, admission_no or "", student_id)


class SummaryService:
    """Recomputes per-student exam summaries and assigns class ranks."""

    def __init__(self, db: Session):
        self.db = db

    def recompute_summary(
        self,
        school_id: int,
        exam_id: int,
        student_id: int,
    ) -> ExamSummary | None:
        """Rebuild a student's summary from all of their current marks for an exam.

        Does nothing when the student has no marks. An existing rank is
        kept; only approval re-ranks a cohort.
        """
        result = self.db.execute(
            select(MarkRecord)
            .where(
                MarkRecord.school_id == school_id,
                MarkRecord.exam_id == exam_id,
                MarkRecord.student_id == student_id,
            )
            .order_by(MarkRecord.updated_at, MarkRecord.id)
            .execution_options(populate_existing=True)
        )
        records = list(result.scalars().all())
        if not records:
            return None

        total_marks = sum((grade_policy.to_decimal(r.marks_obtained) for r in records), Decimal("0"))
        total_max_marks = sum((grade_policy.to_decimal(r.max_marks) for r in records), Decimal("0"))
        overall = grade_policy.overall_percentage((r.marks_obtained, r.max_marks) for r in records)
        subjects_failed = sum(1 for r in records if r.passing_status == PassingStatus.FAIL)
        subjects_passed = len(records) - subjects_failed

        values = {
            "school_id": school_id,
            "exam_id": exam_id,
            "student_id": student_id,
            # Latest entry wins if the student changed class mid-exam
            "class_id": records[-1].class_id,
            "total_marks": grade_policy.round2(total_marks),
            "total_max_marks": grade_policy.round2(total_max_marks),
            "overall_percentage": grade_policy.round2(overall),
            "overall_grade": grade_policy.grade_from_percentage(overall),
            "result_status": ResultStatus.FAIL if subjects_failed else ResultStatus.PASS,
            "subjects_passed": subjects_passed,
            "subjects_failed": subjects_failed,
        }
        stmt = build_upsert(
            self.db,
            ExamSummary,
            values,
            conflict_columns=["exam_id", "student_id"],
            update_columns=[
                "class_id",
                "total_marks",
                "total_max_marks",
                "overall_percentage",
                "overall_grade",
                "result_status",
                "subjects_passed",
                "subjects_failed",
            ],
        )
        self.db.execute(stmt)
        return self.get_summary(school_id, exam_id, student_id)

    def get_summary(self, school_id: int, exam_id: int, student_id: int) -> ExamSummary | None:
        """Current summary row for (exam, student), if any."""
        result = self.db.execute(
            select(ExamSummary)
            .where(
                ExamSummary.school_id == school_id,
                ExamSummary.exam_id == exam_id,
                ExamSummary.student_id == student_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def rank_cohort(self, school_id: int, exam_id: int, class_id: int) -> list[ExamSummary]:
        """Assign 1-based ranks to every summary of an (exam, class) cohort."""
        result = self.db.execute(
            select(ExamSummary, Student.admission_no)
            .join(Student, Student.id == ExamSummary.student_id)
            .where(
                ExamSummary.school_id == school_id,
                ExamSummary.exam_id == exam_id,
                ExamSummary.class_id == class_id,
            )
            .execution_options(populate_existing=True)
        )
        rows = result.all()
        ordered = sorted(
            rows,
            key=lambda row: ranking_key(
                grade_policy.to_decimal(row[0].overall_percentage), row[1], row[0].student_id
            ),
        )

        summaries = []
        for index, (summary, _admission_no) in enumerate(ordered):
            summary.rank_in_class = index + 1
            summaries.append(summary)
        self.db.flush()

        logger.info(
            f"[RANK] exam_id={exam_id} class_id={class_id}: ranked {len(summaries)} students"
        )
        return summaries

    def list_cohort(self, school_id: int, exam_id: int, class_id: int) -> list[ExamSummaryResponse]:
        """Summaries of a cohort, ranked students first."""
        result = self.db.execute(
            select(ExamSummary)
            .where(
                ExamSummary.school_id == school_id,
                ExamSummary.exam_id == exam_id,
                ExamSummary.class_id == class_id,
            )
            .order_by(
                ExamSummary.rank_in_class.asc().nulls_last(),
                ExamSummary.overall_percentage.desc(),
                ExamSummary.student_id,
            )
        )
        return [ExamSummaryResponse.model_validate(s) for s in result.scalars().all()]

    def reconcile(
        self,
        school_id: int | None = None,
        exam_id: int | None = None,
    ) -> ReconcileResult:
        """Recompute every summary from current marks.

        Summaries are not transactionally tied to mark writes, so this pass
        repairs any that went stale. Cohorts whose marks are all approved
        are re-ranked.
        """
        logger.info(f"[RECONCILE] Starting - school_id={school_id}, exam_id={exam_id}")

        keys_query = select(
            MarkRecord.school_id, MarkRecord.exam_id, MarkRecord.student_id
        ).distinct()
        if school_id is not None:
            keys_query = keys_query.where(MarkRecord.school_id == school_id)
        if exam_id is not None:
            keys_query = keys_query.where(MarkRecord.exam_id == exam_id)

        recomputed = 0
        for key_school, key_exam, key_student in self.db.execute(keys_query).all():
            if self.recompute_summary(key_school, key_exam, key_student) is not None:
                recomputed += 1

        approved = func.sum(case((MarkRecord.review_status == ReviewStatus.APPROVED, 1), else_=0))
        cohort_query = select(
            MarkRecord.school_id,
            MarkRecord.exam_id,
            MarkRecord.class_id,
            func.count(MarkRecord.id),
            approved,
        ).group_by(MarkRecord.school_id, MarkRecord.exam_id, MarkRecord.class_id)
        if school_id is not None:
            cohort_query = cohort_query.where(MarkRecord.school_id == school_id)
        if exam_id is not None:
            cohort_query = cohort_query.where(MarkRecord.exam_id == exam_id)

        ranked = 0
        for cohort_school, cohort_exam, cohort_class, total, approved_count in self.db.execute(cohort_query).all():
            if total and total == approved_count:
                self.rank_cohort(cohort_school, cohort_exam, cohort_class)
                ranked += 1

        logger.info(f"[RECONCILE] Completed: {recomputed} summaries, {ranked} cohorts ranked")
        return ReconcileResult(
            summaries_recomputed=recomputed,
            cohorts_ranked=ranked,
            message=f"Recomputed {recomputed} summaries and re-ranked {ranked} approved cohorts.",
        )
