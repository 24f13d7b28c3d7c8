"""Review workflow: submit, approve and reject mark records."""

import logging
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gradebook.core.exceptions import NotFoundError, PreconditionError, ValidationError
from gradebook.models.marks import MarkRecord, ReviewStatus
from gradebook.schemas.review import (
    IncompleteStudent,
    PendingReviewResponse,
    PendingStudentMarks,
    PendingSubjectMark,
    ReviewResult,
)
from gradebook.services.marks import total_marks
from gradebook.services.providers import ExamDefinitionProvider, RosterProvider
from gradebook.services.summary import SummaryService

logger = logging.getLogger(__name__)


class ReviewService:
    """State machine over mark records.

    draft -> submitted -> approved
                       -> correction_required -> submitted
    approved is terminal.
    """

    def __init__(self, db: Session):
        self.db = db
        self.roster = RosterProvider(db)
        self.exams = ExamDefinitionProvider(db)
        self.summaries = SummaryService(db)

    def submit(
        self,
        school_id: int,
        exam_id: int,
        class_id: int,
        student_ids: list[int] | None = None,
    ) -> ReviewResult:
        """Submit marks once every required subject has a mark.

        Targets student_ids, or the class's active roster when omitted. If
        any targeted student is missing a subject, nothing changes.
        """
        self.exams.get_exam(school_id, exam_id)
        self.roster.get_class(school_id, class_id)

        required = {m.subject_id for m in self.exams.exam_subjects(school_id, exam_id, class_id)}
        if not required:
            raise PreconditionError(
                "No subjects are configured for this exam and class",
                details={"exam_id": exam_id, "class_id": class_id},
            )

        if student_ids:
            found = self.roster.get_students(school_id, student_ids)
            for student_id in student_ids:
                student = found.get(student_id)
                if student is None:
                    raise NotFoundError("Student", str(student_id))
                if student.class_id != class_id:
                    raise ValidationError(f"Student {student_id} is not in class {class_id}")
            targets = list(dict.fromkeys(student_ids))
        else:
            targets = [s.id for s in self.roster.list_active_students(school_id, class_id)]
        if not targets:
            raise PreconditionError(
                "No students to submit",
                details={"exam_id": exam_id, "class_id": class_id},
            )

        rows = self.db.execute(
            select(MarkRecord.student_id, MarkRecord.subject_id).where(
                MarkRecord.school_id == school_id,
                MarkRecord.exam_id == exam_id,
                MarkRecord.student_id.in_(targets),
            )
        ).all()
        entered: dict[int, set[int]] = defaultdict(set)
        for student_id, subject_id in rows:
            entered[student_id].add(subject_id)

        incomplete = [
            IncompleteStudent(
                student_id=student_id,
                missing_subject_ids=sorted(required - entered[student_id]),
            )
            for student_id in targets
            if required - entered[student_id]
        ]
        if incomplete:
            logger.info(
                f"[REVIEW] Submit rejected exam_id={exam_id} class_id={class_id}: "
                f"{len(incomplete)} incomplete students"
            )
            raise PreconditionError(
                f"Marks are incomplete for {len(incomplete)} student(s)",
                details={"incomplete": [i.model_dump() for i in incomplete]},
            )

        updated, warnings = self._transition(
            school_id,
            exam_id,
            from_states=ReviewStatus.editable(),
            to_state=ReviewStatus.SUBMITTED,
            student_ids=targets,
        )
        return ReviewResult(
            action="submit",
            exam_id=exam_id,
            class_id=class_id,
            status=ReviewStatus.SUBMITTED,
            updated_count=updated,
            warnings=warnings,
            message=f"Submitted {updated} marks for {len(targets)} student(s).",
        )

    def approve(
        self,
        school_id: int,
        exam_id: int,
        class_id: int,
        reviewed_by: int | None = None,
        remarks: str | None = None,
    ) -> ReviewResult:
        """Approve a cohort's submitted marks and rank the cohort."""
        self._require_submitted(school_id, exam_id, class_id)

        updated, warnings = self._transition(
            school_id,
            exam_id,
            from_states=(ReviewStatus.SUBMITTED,),
            to_state=ReviewStatus.APPROVED,
            class_id=class_id,
            reviewed_by=reviewed_by,
            remarks=remarks,
        )

        ranked = 0
        if updated and not warnings:
            ranked = len(self.summaries.rank_cohort(school_id, exam_id, class_id))

        unreviewed = self._count(school_id, exam_id, class_id, ReviewStatus.editable())
        if unreviewed:
            warnings.append(
                f"{unreviewed} mark(s) still in draft or correction required were not approved"
            )

        return ReviewResult(
            action="approve",
            exam_id=exam_id,
            class_id=class_id,
            status=ReviewStatus.APPROVED,
            updated_count=updated,
            ranked_count=ranked,
            warnings=warnings,
            message=f"Approved {updated} marks.",
        )

    def reject(
        self,
        school_id: int,
        exam_id: int,
        class_id: int,
        reviewed_by: int | None = None,
        remarks: str | None = None,
    ) -> ReviewResult:
        """Send a cohort's submitted marks back for correction. Marks are not altered."""
        self._require_submitted(school_id, exam_id, class_id)

        updated, warnings = self._transition(
            school_id,
            exam_id,
            from_states=(ReviewStatus.SUBMITTED,),
            to_state=ReviewStatus.CORRECTION_REQUIRED,
            class_id=class_id,
            reviewed_by=reviewed_by,
            remarks=remarks,
        )
        return ReviewResult(
            action="reject",
            exam_id=exam_id,
            class_id=class_id,
            status=ReviewStatus.CORRECTION_REQUIRED,
            updated_count=updated,
            warnings=warnings,
            message=f"Returned {updated} marks for correction.",
        )

    def list_pending(
        self,
        school_id: int,
        exam_id: int | None = None,
        class_id: int | None = None,
    ) -> PendingReviewResponse:
        """Submitted or correction-required marks grouped by (exam, student)."""
        query = select(MarkRecord).where(
            MarkRecord.school_id == school_id,
            MarkRecord.review_status.in_(
                (ReviewStatus.SUBMITTED, ReviewStatus.CORRECTION_REQUIRED)
            ),
        )
        if exam_id is not None:
            query = query.where(MarkRecord.exam_id == exam_id)
        if class_id is not None:
            query = query.where(MarkRecord.class_id == class_id)
        records = self.db.execute(
            query.order_by(MarkRecord.exam_id, MarkRecord.student_id, MarkRecord.subject_id)
        ).scalars().all()

        grouped: dict[tuple[int, int], list[MarkRecord]] = defaultdict(list)
        for record in records:
            grouped[(record.exam_id, record.student_id)].append(record)

        data = []
        for (group_exam_id, _student_id), group in grouped.items():
            first = group[0]
            obtained, maximum = total_marks(group)
            data.append(PendingStudentMarks(
                exam_id=group_exam_id,
                class_id=first.class_id,
                student_id=first.student_id,
                student_name=first.student.student_name if first.student else None,
                admission_no=first.student.admission_no if first.student else None,
                roll_number=first.student.roll_number if first.student else None,
                review_status=first.review_status,
                marks=[
                    PendingSubjectMark(
                        subject_id=r.subject_id,
                        subject_name=r.subject_name,
                        marks_obtained=r.marks_obtained,
                        max_marks=r.max_marks,
                        review_status=r.review_status,
                    )
                    for r in group
                ],
                total_marks=obtained,
                total_max_marks=maximum,
            ))
        return PendingReviewResponse(data=data, total_students=len({d.student_id for d in data}))

    # ==========================================
    # Helper Methods
    # ==========================================

    def _require_submitted(self, school_id: int, exam_id: int, class_id: int) -> None:
        self.exams.get_exam(school_id, exam_id)
        self.roster.get_class(school_id, class_id)
        if not self._count(school_id, exam_id, class_id, (ReviewStatus.SUBMITTED,)):
            raise PreconditionError(
                "No submitted marks for this exam and class",
                details={"exam_id": exam_id, "class_id": class_id},
            )

    def _count(
        self,
        school_id: int,
        exam_id: int,
        class_id: int,
        statuses: tuple[ReviewStatus, ...],
    ) -> int:
        return self.db.execute(
            select(func.count(MarkRecord.id)).where(
                MarkRecord.school_id == school_id,
                MarkRecord.exam_id == exam_id,
                MarkRecord.class_id == class_id,
                MarkRecord.review_status.in_(statuses),
            )
        ).scalar() or 0

    def _transition(
        self,
        school_id: int,
        exam_id: int,
        from_states: tuple[ReviewStatus, ...],
        to_state: ReviewStatus,
        class_id: int | None = None,
        student_ids: list[int] | None = None,
        reviewed_by: int | None = None,
        remarks: str | None = None,
    ) -> tuple[int, list[str]]:
        """Move matching records to to_state as a write separate from the marks.

        The marks are already durable, so a failed status write is logged
        and returned as a warning instead of being raised.
        """
        now = datetime.now(timezone.utc)
        values: dict = {"review_status": to_state, "updated_at": now}
        if to_state in (ReviewStatus.APPROVED, ReviewStatus.CORRECTION_REQUIRED):
            values.update(reviewed_by=reviewed_by, reviewed_at=now, review_remarks=remarks)

        stmt = update(MarkRecord).where(
            MarkRecord.school_id == school_id,
            MarkRecord.exam_id == exam_id,
            MarkRecord.review_status.in_(from_states),
        )
        if class_id is not None:
            stmt = stmt.where(MarkRecord.class_id == class_id)
        if student_ids is not None:
            stmt = stmt.where(MarkRecord.student_id.in_(student_ids))
        stmt = stmt.values(**values).execution_options(synchronize_session="fetch")

        try:
            with self.db.begin_nested():
                updated = self.db.execute(stmt).rowcount
        except SQLAlchemyError as e:
            logger.warning(
                f"[REVIEW] Status change to {to_state.value} failed for exam_id={exam_id} "
                f"class_id={class_id}; marks are unchanged: {e}"
            )
            return 0, [
                f"Marks are saved but their status could not be changed to {to_state.value}"
            ]

        logger.info(
            f"[REVIEW] exam_id={exam_id} class_id={class_id}: {updated} marks -> {to_state.value}"
        )
        return updated, []
