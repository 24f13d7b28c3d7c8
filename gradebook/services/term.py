"""Term results: weighted combination of several exams.

Results are computed on every call from submitted and approved marks and
are never stored.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from gradebook.core.config import settings
from gradebook.core.exceptions import PreconditionError, ValidationError
from gradebook.models.marks import MarkRecord, ReviewStatus
from gradebook.schemas.term import (
    ExamBreakupEntry,
    StudentTermReport,
    TermResultResponse,
    TermStudentResult,
    TermSubjectResult,
)
from gradebook.services import grade_policy
from gradebook.services.providers import ExamDefinitionProvider, RosterProvider
from gradebook.services.summary import ranking_key

logger = logging.getLogger(__name__)


class _SubjectAccumulator:
    """Running weighted sums for one (student, subject)."""

    def __init__(self):
        self.weighted_sum = grade_policy.ZERO
        self.weight_sum = grade_policy.ZERO
        self.exams_counted = 0

    def add(self, pct: Decimal, weight: Decimal) -> None:
        self.weighted_sum += pct * weight
        self.weight_sum += weight
        self.exams_counted += 1

    @property
    def weighted_percentage(self) -> Decimal | None:
        # Only exams with data for this subject are in weight_sum
        if self.weight_sum <= 0:
            return None
        return self.weighted_sum / self.weight_sum


def _subject_results(
    accumulators: dict[int, _SubjectAccumulator],
    names: dict[int, str],
) -> tuple[list[TermSubjectResult], Decimal | None]:
    """Per-subject results and the unrounded mean of their weighted percentages."""
    results = []
    values = []
    for subject_id in sorted(accumulators):
        weighted = accumulators[subject_id].weighted_percentage
        if weighted is None:
            continue
        values.append(weighted)
        results.append(TermSubjectResult(
            subject_id=subject_id,
            subject_name=names.get(subject_id),
            weighted_percentage=grade_policy.round2(weighted),
            grade=grade_policy.grade_from_percentage(weighted),
            exams_counted=accumulators[subject_id].exams_counted,
        ))
    if not values:
        return results, None
    return results, sum(values, grade_policy.ZERO) / len(values)


class TermCalculator:
    """Combines exams into a term using caller-supplied weights."""

    def __init__(self, db: Session):
        self.db = db
        self.roster = RosterProvider(db)
        self.exams = ExamDefinitionProvider(db)

    def compute_term(
        self,
        school_id: int,
        class_id: int,
        exam_ids: list[int],
        weights: list[Any],
        term_id: int | None = None,
    ) -> TermResultResponse:
        """Weighted term result for every active student of a class, ranked."""
        weight_by_exam = self._validate_weights(exam_ids, weights)
        self.roster.get_class(school_id, class_id)
        self.exams.get_exams(school_id, exam_ids)

        logger.info(
            f"[TERM] Computing class_id={class_id} exams={exam_ids} "
            f"weights={[str(w) for w in weight_by_exam.values()]}"
        )

        students = self.roster.list_active_students(school_id, class_id)
        if not students:
            return TermResultResponse(
                class_id=class_id,
                term_id=term_id,
                exam_ids=exam_ids,
                weights=list(weight_by_exam.values()),
                message="No students in this class",
            )

        records = self._counted_marks(school_id, exam_ids, [s.id for s in students])
        by_student: dict[int, dict[int, _SubjectAccumulator]] = defaultdict(
            lambda: defaultdict(_SubjectAccumulator)
        )
        for record in records:
            by_student[record.student_id][record.subject_id].add(
                grade_policy.percentage(record.marks_obtained, record.max_marks),
                weight_by_exam[record.exam_id] / grade_policy.HUNDRED,
            )

        names = self.exams.subject_names(school_id, {r.subject_id for r in records})
        rows = []
        for student in students:
            breakup, overall = _subject_results(by_student.get(student.id, {}), names)
            rows.append((student, breakup, overall))

        rows.sort(key=lambda row: ranking_key(
            grade_policy.round2(row[2]) if row[2] is not None else Decimal("-1"),
            row[0].admission_no,
            row[0].id,
        ))

        data = [
            TermStudentResult(
                student_id=student.id,
                student_name=student.student_name,
                roll_number=student.roll_number,
                admission_no=student.admission_no,
                overall_percentage=grade_policy.round2(overall),
                overall_grade=(
                    grade_policy.grade_from_percentage(overall)
                    if overall is not None else grade_policy.NOT_AVAILABLE
                ),
                rank_in_class=index + 1,
                subject_breakup=breakup,
            )
            for index, (student, breakup, overall) in enumerate(rows)
        ]

        logger.info(f"[TERM] Completed class_id={class_id}: {len(data)} students")
        return TermResultResponse(
            class_id=class_id,
            term_id=term_id,
            exam_ids=exam_ids,
            weights=list(weight_by_exam.values()),
            data=data,
        )

    def compute_stored_term(self, school_id: int, class_id: int, term_id: int) -> TermResultResponse:
        """compute_term with exams and weights taken from a stored term."""
        exam_ids, weights = self.term_weights(school_id, term_id)
        return self.compute_term(school_id, class_id, exam_ids, weights, term_id=term_id)

    def term_weights(self, school_id: int, term_id: int) -> tuple[list[int], list[Decimal]]:
        """Active exam mappings of a stored term as (exam_ids, weights)."""
        term = self.exams.get_term(school_id, term_id)
        mappings = [m for m in term.exam_mappings if m.is_active]
        if not mappings:
            raise PreconditionError(
                "Term has no active exams",
                details={"term_id": term_id},
            )
        return [m.exam_id for m in mappings], [m.weightage for m in mappings]

    def student_term_report(
        self,
        school_id: int,
        student_id: int,
        exam_ids: list[int],
        weights: list[Any],
        term_id: int | None = None,
    ) -> StudentTermReport:
        """One student's term result with an exam-wise breakup."""
        weight_by_exam = self._validate_weights(exam_ids, weights)
        self.roster.get_student(school_id, student_id)
        self.exams.get_exams(school_id, exam_ids)

        records = self._counted_marks(school_id, exam_ids, [student_id])
        names = self.exams.subject_names(school_id, {r.subject_id for r in records})

        accumulators: dict[int, _SubjectAccumulator] = defaultdict(_SubjectAccumulator)
        exam_breakup = []
        for record in records:
            pct = grade_policy.percentage(record.marks_obtained, record.max_marks)
            weight = weight_by_exam[record.exam_id]
            accumulators[record.subject_id].add(pct, weight / grade_policy.HUNDRED)
            exam_breakup.append(ExamBreakupEntry(
                exam_id=record.exam_id,
                subject_id=record.subject_id,
                subject_name=names.get(record.subject_id),
                marks_obtained=record.marks_obtained,
                max_marks=record.max_marks,
                percentage=grade_policy.round2(pct),
                weight=weight,
            ))

        breakup, overall = _subject_results(accumulators, names)
        return StudentTermReport(
            student_id=student_id,
            term_id=term_id,
            exam_ids=exam_ids,
            weights=list(weight_by_exam.values()),
            exam_breakup=exam_breakup,
            subject_breakup=breakup,
            overall_percentage=grade_policy.round2(overall),
            overall_grade=(
                grade_policy.grade_from_percentage(overall)
                if overall is not None else grade_policy.NOT_AVAILABLE
            ),
        )

    # ==========================================
    # Helper Methods
    # ==========================================

    def _validate_weights(self, exam_ids: list[int], weights: Iterable[Any]) -> dict[int, Decimal]:
        """Check exam/weight lists and return weight per exam, in exam order."""
        weights = list(weights)
        if not exam_ids or len(exam_ids) != len(weights):
            raise ValidationError(
                "exam_ids and weights must be non-empty lists of the same length",
                details={"exam_count": len(exam_ids), "weight_count": len(weights)},
            )
        if len(set(exam_ids)) != len(exam_ids):
            raise ValidationError("exam_ids must not repeat", details={"exam_ids": exam_ids})

        parsed = []
        for raw in weights:
            weight = grade_policy.parse_number(raw)
            if weight is None:
                raise ValidationError("Each weight must be a number", details={"weight": str(raw)})
            if weight < 0 or weight > grade_policy.HUNDRED:
                raise ValidationError(
                    "Each weight must be between 0 and 100",
                    details={"weight": str(raw)},
                )
            parsed.append(weight)

        total = sum(parsed, grade_policy.ZERO)
        tolerance = Decimal(str(settings.TERM_WEIGHT_TOLERANCE))
        if abs(total - grade_policy.HUNDRED) > tolerance:
            raise PreconditionError(
                f"Weights must sum to 100, got {total}",
                details={"weights": [str(w) for w in parsed], "total": str(total)},
            )
        return dict(zip(exam_ids, parsed))

    def _counted_marks(
        self,
        school_id: int,
        exam_ids: list[int],
        student_ids: list[int],
    ) -> list[MarkRecord]:
        """Submitted and approved marks; drafts never count toward a term."""
        result = self.db.execute(
            select(MarkRecord)
            .where(
                MarkRecord.school_id == school_id,
                MarkRecord.exam_id.in_(exam_ids),
                MarkRecord.student_id.in_(student_ids),
                MarkRecord.review_status.in_(ReviewStatus.counted()),
            )
            .order_by(MarkRecord.exam_id, MarkRecord.subject_id)
        )
        return list(result.scalars().all())
