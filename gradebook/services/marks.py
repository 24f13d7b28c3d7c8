"""Mark record store: validated single and bulk mark upserts."""

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gradebook.core.config import settings
from gradebook.core.exceptions import InternalError, NotFoundError, ValidationError
from gradebook.core.upsert import build_upsert
from gradebook.models.exam import Examination
from gradebook.models.marks import MarkRecord, ReviewStatus
from gradebook.models.student import Student
from gradebook.schemas.marks import (
    BulkMarksResponse,
    BulkRowError,
    MarkRecordResponse,
    SingleMarkResponse,
    StudentMarksInput,
    SubjectMarkInput,
)
from gradebook.schemas.summary import ExamSummaryResponse
from gradebook.services import grade_policy
from gradebook.services.providers import ExamDefinitionProvider, RosterProvider
from gradebook.services.summary import SummaryService

logger = logging.getLogger(__name__)

# Columns overwritten when a mark is re-entered; review_status is never among them
_UPDATABLE_COLUMNS = [
    "class_id",
    "max_marks",
    "marks_obtained",
    "percentage",
    "grade",
    "passing_marks",
    "passing_status",
    "remarks",
    "entered_by",
]


class MarkService:
    """Mark entry with derived percentage, grade and pass status."""

    def __init__(self, db: Session):
        self.db = db
        self.roster = RosterProvider(db)
        self.exams = ExamDefinitionProvider(db)
        self.summaries = SummaryService(db)

    # ==========================================
    # Single Entry
    # ==========================================

    def upsert_marks(
        self,
        school_id: int,
        exam_id: int,
        student_id: int,
        subject_id: int,
        max_marks: Any,
        marks_obtained: Any,
        remarks: str | None = None,
        entered_by: int | None = None,
    ) -> SingleMarkResponse:
        """Create or update one mark, then recompute the student's summary."""
        exam = self.exams.get_exam(school_id, exam_id)
        student = self.roster.get_student(school_id, student_id)

        try:
            record = self._save_row(
                school_id, exam, student, subject_id, max_marks, marks_obtained, remarks, entered_by
            )
        except SQLAlchemyError as e:
            logger.error(
                f"[MARKS] Store error exam_id={exam_id} student_id={student_id} subject_id={subject_id}: {e}"
            )
            raise InternalError(
                "Failed to save marks",
                details={"exam_id": exam_id, "student_id": student_id, "subject_id": subject_id},
            ) from e

        summary = self.summaries.recompute_summary(school_id, exam_id, student_id)
        return SingleMarkResponse(
            record=MarkRecordResponse.model_validate(record),
            summary=ExamSummaryResponse.model_validate(summary) if summary else None,
        )

    def _save_row(
        self,
        school_id: int,
        exam: Examination,
        student: Student,
        subject_id: int | None,
        max_marks: Any,
        marks_obtained: Any,
        remarks: str | None,
        entered_by: int | None,
    ) -> MarkRecord:
        """Validate and upsert a single (exam, student, subject) mark."""
        context = {"student_id": student.id, "subject_id": subject_id}
        if subject_id is None:
            raise ValidationError("Missing subject_id", details=context)
        self.exams.get_subject(school_id, subject_id)

        mapping = self.exams.get_subject_mapping(school_id, exam.id, subject_id, student.class_id)
        if max_marks is None:
            if mapping is None:
                raise ValidationError(
                    f"Max marks required: subject {subject_id} is not configured for this exam",
                    details=context,
                )
            max_marks = mapping.max_marks
        maximum = grade_policy.parse_number(max_marks)
        if maximum is None:
            raise ValidationError("Max marks must be a number", details=context)
        if maximum <= 0:
            raise ValidationError("Max marks must be greater than 0", details=context)

        if marks_obtained is None:
            raise ValidationError("Marks obtained is required", details=context)
        obtained = grade_policy.parse_number(marks_obtained)
        if obtained is None:
            raise ValidationError("Marks obtained must be a number", details=context)
        if obtained < 0:
            raise ValidationError(
                f"Marks obtained cannot be negative for subject {subject_id} (student {student.id})",
                details=context,
            )
        if obtained > maximum:
            raise ValidationError(
                f"Marks obtained ({obtained}) cannot exceed max marks ({maximum}) "
                f"for subject {subject_id} (student {student.id})",
                details=context,
            )

        self._ensure_editable(exam.id, student.id, subject_id)

        passing_marks = self.exams.exam_subject_passing_marks(
            school_id, exam.id, subject_id, student.class_id
        )
        if passing_marks is None:
            passing_marks = grade_policy.default_passing_marks(
                maximum, settings.DEFAULT_PASS_PERCENTAGE
            )
        pct = grade_policy.percentage(obtained, maximum)

        values = {
            "school_id": school_id,
            "exam_id": exam.id,
            "student_id": student.id,
            "subject_id": subject_id,
            "class_id": student.class_id,
            "max_marks": maximum,
            "marks_obtained": obtained,
            "percentage": grade_policy.round2(pct),
            "grade": grade_policy.grade_from_percentage(pct),
            "passing_marks": passing_marks,
            "passing_status": grade_policy.pass_status(obtained, passing_marks),
            "remarks": remarks or None,
            "entered_by": entered_by,
            "review_status": ReviewStatus.DRAFT,
        }
        stmt = build_upsert(
            self.db,
            MarkRecord,
            values,
            conflict_columns=["exam_id", "student_id", "subject_id"],
            update_columns=_UPDATABLE_COLUMNS,
            where=MarkRecord.__table__.c.review_status.in_(ReviewStatus.editable()),
        )
        result = self.db.execute(stmt)
        if result.rowcount == 0:
            # Locked between the status check and the write
            raise ValidationError("Marks are locked for review", details=context)

        return self._get_record(exam.id, student.id, subject_id)

    def _ensure_editable(self, exam_id: int, student_id: int, subject_id: int) -> None:
        """Reject edits to marks that are submitted or approved."""
        status = self.db.execute(
            select(MarkRecord.review_status).where(
                MarkRecord.exam_id == exam_id,
                MarkRecord.student_id == student_id,
                MarkRecord.subject_id == subject_id,
            )
        ).scalar_one_or_none()
        if status is not None and status not in ReviewStatus.editable():
            raise ValidationError(
                f"Marks for subject {subject_id} (student {student_id}) are {status.value} "
                "and can no longer be edited",
                details={"student_id": student_id, "subject_id": subject_id, "status": status.value},
            )

    def _get_record(self, exam_id: int, student_id: int, subject_id: int) -> MarkRecord:
        result = self.db.execute(
            select(MarkRecord)
            .where(
                MarkRecord.exam_id == exam_id,
                MarkRecord.student_id == student_id,
                MarkRecord.subject_id == subject_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    # ==========================================
    # Bulk Operations
    # ==========================================

    def upsert_many_for_class(
        self,
        school_id: int,
        exam_id: int,
        class_id: int,
        entries: list[StudentMarksInput],
        entered_by: int | None = None,
    ) -> BulkMarksResponse:
        """Save a class's marks with partial success.

        Rows failing validation are reported and skipped; valid rows are
        still saved. Unknown exam or class aborts the whole batch.
        """
        exam = self.exams.get_exam(school_id, exam_id)
        self.roster.get_class(school_id, class_id)
        return self._upsert_many(school_id, exam, entries, entered_by, class_id=class_id)

    def upsert_many_for_student(
        self,
        school_id: int,
        exam_id: int,
        student_id: int,
        subjects: list[SubjectMarkInput],
        entered_by: int | None = None,
    ) -> BulkMarksResponse:
        """Save several subjects for one student with partial success."""
        exam = self.exams.get_exam(school_id, exam_id)
        self.roster.get_student(school_id, student_id)
        entry = StudentMarksInput(student_id=student_id, subjects=subjects)
        return self._upsert_many(school_id, exam, [entry], entered_by)

    def _upsert_many(
        self,
        school_id: int,
        exam: Examination,
        entries: list[StudentMarksInput],
        entered_by: int | None,
        class_id: int | None = None,
    ) -> BulkMarksResponse:
        """Write rows one by one, each in its own savepoint."""
        logger.info(
            f"[MARKS BULK] Starting - school_id={school_id}, exam_id={exam.id}, "
            f"class_id={class_id}, students={len(entries)}"
        )

        students = self.roster.get_students(
            school_id, [e.student_id for e in entries if e.student_id is not None]
        )
        saved: list[MarkRecord] = []
        errors: list[BulkRowError] = []
        touched: list[int] = []
        row = 0

        for entry in entries:
            if entry.student_id is None or entry.subjects is None:
                errors.append(BulkRowError(
                    student_id=entry.student_id,
                    error="Missing student_id or subjects array",
                ))
                continue

            student = students.get(entry.student_id)
            student_error = None
            if student is None:
                student_error = f"Student {entry.student_id} not found"
            elif class_id is not None and student.class_id != class_id:
                student_error = f"Student {entry.student_id} is not in class {class_id}"

            for subject in entry.subjects:
                row += 1
                if student_error:
                    errors.append(BulkRowError(
                        row=row,
                        student_id=entry.student_id,
                        subject_id=subject.subject_id,
                        error=student_error,
                    ))
                    continue

                try:
                    with self.db.begin_nested():
                        record = self._save_row(
                            school_id,
                            exam,
                            student,
                            subject.subject_id,
                            subject.max_marks,
                            subject.marks_obtained,
                            subject.remarks,
                            entered_by,
                        )
                except (ValidationError, NotFoundError) as e:
                    errors.append(BulkRowError(
                        row=row,
                        student_id=entry.student_id,
                        subject_id=subject.subject_id,
                        error=e.message,
                    ))
                    continue
                except SQLAlchemyError as e:
                    logger.warning(
                        f"[MARKS BULK] Row {row} store error exam_id={exam.id} "
                        f"student_id={entry.student_id} subject_id={subject.subject_id}: {e}"
                    )
                    errors.append(BulkRowError(
                        row=row,
                        student_id=entry.student_id,
                        subject_id=subject.subject_id,
                        error=f"Failed to save marks: {e.__class__.__name__}",
                    ))
                    continue

                saved.append(record)
                if student.id not in touched:
                    touched.append(student.id)

        summaries, warnings = self._recompute_touched(school_id, exam.id, touched)

        logger.info(
            f"[MARKS BULK] Completed: {len(saved)} saved, {len(errors)} errors, "
            f"{len(summaries)} summaries"
        )
        return BulkMarksResponse(
            total_rows=row,
            saved_count=len(saved),
            error_count=len(errors),
            saved=[MarkRecordResponse.model_validate(r) for r in saved],
            errors=errors,
            summaries=[ExamSummaryResponse.model_validate(s) for s in summaries],
            warnings=warnings,
            message=f"Saved {len(saved)} marks for {len(touched)} student(s).",
        )

    def _recompute_touched(
        self, school_id: int, exam_id: int, student_ids: list[int]
    ) -> tuple[list, list[str]]:
        """One summary recompute per touched student.

        A failed recompute leaves that summary stale (the reconciliation
        pass repairs it) and is reported as a warning; the saved marks stand.
        """
        summaries = []
        warnings: list[str] = []
        for student_id in student_ids:
            try:
                with self.db.begin_nested():
                    summary = self.summaries.recompute_summary(school_id, exam_id, student_id)
            except SQLAlchemyError as e:
                logger.warning(
                    f"[MARKS BULK] Summary recompute failed exam_id={exam_id} student_id={student_id}: {e}"
                )
                warnings.append(f"Summary for student {student_id} could not be updated")
                continue
            if summary is not None:
                summaries.append(summary)
        return summaries, warnings

    # ==========================================
    # Reads
    # ==========================================

    def fetch_for_student_exam(
        self,
        school_id: int,
        exam_id: int,
        student_id: int,
    ) -> list[MarkRecordResponse]:
        """All marks of a student for an exam, in entry order."""
        result = self.db.execute(
            select(MarkRecord)
            .where(
                MarkRecord.school_id == school_id,
                MarkRecord.exam_id == exam_id,
                MarkRecord.student_id == student_id,
            )
            .order_by(MarkRecord.created_at, MarkRecord.id)
        )
        return [MarkRecordResponse.model_validate(r) for r in result.scalars().all()]

    def list_for_cohort(
        self,
        school_id: int,
        exam_id: int,
        class_id: int,
        statuses: tuple[ReviewStatus, ...] | None = None,
    ) -> list[MarkRecord]:
        """Marks of an (exam, class) cohort, optionally filtered by review status."""
        query = select(MarkRecord).where(
            MarkRecord.school_id == school_id,
            MarkRecord.exam_id == exam_id,
            MarkRecord.class_id == class_id,
        )
        if statuses:
            query = query.where(MarkRecord.review_status.in_(statuses))
        result = self.db.execute(query.order_by(MarkRecord.student_id, MarkRecord.subject_id))
        return list(result.scalars().all())


def total_marks(records: list[MarkRecord]) -> tuple[Decimal, Decimal]:
    """(sum of obtained, sum of max) over a list of records."""
    obtained = sum((grade_policy.to_decimal(r.marks_obtained) for r in records), Decimal("0"))
    maximum = sum((grade_policy.to_decimal(r.max_marks) for r in records), Decimal("0"))
    return obtained, maximum
