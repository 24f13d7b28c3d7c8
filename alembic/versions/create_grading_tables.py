"""Create grading engine tables.

Revision ID: create_grading_tables
Revises:
Create Date: 2026-10-19

Creates reference tables (classes, students, subjects, staff), exam and
term definitions, per-subject mark records and per-student exam summaries.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'create_grading_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Enum labels are the Python member names, as SQLAlchemy's Enum stores them
studentstatus = postgresql.ENUM(
    'ACTIVE', 'INACTIVE', 'TRANSFERRED', 'GRADUATED',
    name='studentstatus', create_type=False,
)
reviewstatus = postgresql.ENUM(
    'DRAFT', 'SUBMITTED', 'CORRECTION_REQUIRED', 'APPROVED',
    name='reviewstatus', create_type=False,
)
passingstatus = postgresql.ENUM('PASS', 'FAIL', name='passingstatus', create_type=False)
resultstatus = postgresql.ENUM('PASS', 'FAIL', name='resultstatus', create_type=False)

ENUMS = (studentstatus, reviewstatus, passingstatus, resultstatus)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _scoped_id() -> list[sa.Column]:
    return [
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('school_id', sa.BigInteger(), nullable=False),
    ]


def upgrade() -> None:
    """Create grading tables."""
    conn = op.get_bind()

    for enum_type in ENUMS:
        enum_type.create(conn, checkfirst=True)

    # Reference data
    op.create_table(
        'classes',
        *_scoped_id(),
        sa.Column('class_name', sa.String(50), nullable=False),
        sa.Column('section', sa.String(50), nullable=True),
        sa.Column('academic_year', sa.String(20), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('school_id', 'class_name', 'section', 'academic_year', name='uq_class_section_year'),
    )
    op.create_index('ix_classes_school_id', 'classes', ['school_id'])

    op.create_table(
        'subjects',
        *_scoped_id(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('color', sa.String(20), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_subjects_school_id', 'subjects', ['school_id'])

    op.create_table(
        'staff',
        *_scoped_id(),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('staff_code', sa.String(50), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_staff_school_id', 'staff', ['school_id'])

    op.create_table(
        'students',
        *_scoped_id(),
        sa.Column('class_id', sa.BigInteger(), nullable=False),
        sa.Column('student_name', sa.String(255), nullable=False),
        sa.Column('roll_number', sa.String(50), nullable=True),
        sa.Column('admission_no', sa.String(50), nullable=True),
        sa.Column('academic_year', sa.String(20), nullable=False),
        sa.Column('status', studentstatus, nullable=False, server_default='ACTIVE'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='RESTRICT'),
    )
    op.create_index('ix_students_school_id', 'students', ['school_id'])
    op.create_index('ix_students_class_id', 'students', ['class_id'])
    op.create_index('ix_students_admission_no', 'students', ['admission_no'])
    op.create_index('ix_students_status', 'students', ['status'])

    # Exam and term definitions
    op.create_table(
        'examinations',
        *_scoped_id(),
        sa.Column('exam_name', sa.String(255), nullable=False),
        sa.Column('academic_year', sa.String(20), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_examinations_school_id', 'examinations', ['school_id'])
    op.create_index('ix_examinations_exam_name', 'examinations', ['exam_name'])

    op.create_table(
        'exam_subject_mappings',
        *_scoped_id(),
        sa.Column('exam_id', sa.BigInteger(), nullable=False),
        sa.Column('class_id', sa.BigInteger(), nullable=True),
        sa.Column('subject_id', sa.BigInteger(), nullable=False),
        sa.Column('max_marks', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('pass_marks', sa.DECIMAL(10, 2), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['exam_id'], ['examinations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('exam_id', 'class_id', 'subject_id', name='uq_exam_class_subject'),
    )
    op.create_index('ix_exam_subject_mappings_school_id', 'exam_subject_mappings', ['school_id'])
    op.create_index('ix_exam_subject_mappings_exam_id', 'exam_subject_mappings', ['exam_id'])
    op.create_index('ix_exam_subject_mappings_class_id', 'exam_subject_mappings', ['class_id'])

    op.create_table(
        'terms',
        *_scoped_id(),
        sa.Column('term_name', sa.String(255), nullable=False),
        sa.Column('academic_year', sa.String(20), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_terms_school_id', 'terms', ['school_id'])

    op.create_table(
        'exam_term_mappings',
        *_scoped_id(),
        sa.Column('term_id', sa.BigInteger(), nullable=False),
        sa.Column('exam_id', sa.BigInteger(), nullable=False),
        sa.Column('weightage', sa.DECIMAL(5, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['term_id'], ['terms.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['exam_id'], ['examinations.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('term_id', 'exam_id', name='uq_term_exam'),
    )
    op.create_index('ix_exam_term_mappings_school_id', 'exam_term_mappings', ['school_id'])
    op.create_index('ix_exam_term_mappings_term_id', 'exam_term_mappings', ['term_id'])

    # Marks
    op.create_table(
        'student_subject_marks',
        *_scoped_id(),
        sa.Column('exam_id', sa.BigInteger(), nullable=False),
        sa.Column('student_id', sa.BigInteger(), nullable=False),
        sa.Column('subject_id', sa.BigInteger(), nullable=False),
        sa.Column('class_id', sa.BigInteger(), nullable=False),
        sa.Column('max_marks', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('marks_obtained', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('percentage', sa.DECIMAL(5, 2), nullable=False),
        sa.Column('grade', sa.String(10), nullable=False),
        sa.Column('passing_marks', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('passing_status', passingstatus, nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('entered_by', sa.BigInteger(), nullable=True),
        sa.Column('review_status', reviewstatus, nullable=False, server_default='DRAFT'),
        sa.Column('reviewed_by', sa.BigInteger(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('review_remarks', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['exam_id'], ['examinations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['entered_by'], ['staff.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['reviewed_by'], ['staff.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('exam_id', 'student_id', 'subject_id', name='uq_marks_exam_student_subject'),
    )
    op.create_index('ix_student_subject_marks_school_id', 'student_subject_marks', ['school_id'])
    op.create_index('ix_student_subject_marks_exam_id', 'student_subject_marks', ['exam_id'])
    op.create_index('ix_student_subject_marks_student_id', 'student_subject_marks', ['student_id'])
    op.create_index('ix_student_subject_marks_class_id', 'student_subject_marks', ['class_id'])
    op.create_index('ix_student_subject_marks_review_status', 'student_subject_marks', ['review_status'])

    # Summaries
    op.create_table(
        'student_exam_summaries',
        *_scoped_id(),
        sa.Column('exam_id', sa.BigInteger(), nullable=False),
        sa.Column('student_id', sa.BigInteger(), nullable=False),
        sa.Column('class_id', sa.BigInteger(), nullable=False),
        sa.Column('total_marks', sa.DECIMAL(12, 2), nullable=False),
        sa.Column('total_max_marks', sa.DECIMAL(12, 2), nullable=False),
        sa.Column('overall_percentage', sa.DECIMAL(5, 2), nullable=False),
        sa.Column('overall_grade', sa.String(10), nullable=False),
        sa.Column('result_status', resultstatus, nullable=False),
        sa.Column('subjects_passed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('subjects_failed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rank_in_class', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['exam_id'], ['examinations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='RESTRICT'),
        sa.UniqueConstraint('exam_id', 'student_id', name='uq_summary_exam_student'),
    )
    op.create_index('ix_student_exam_summaries_school_id', 'student_exam_summaries', ['school_id'])
    op.create_index('ix_student_exam_summaries_exam_id', 'student_exam_summaries', ['exam_id'])
    op.create_index('ix_student_exam_summaries_student_id', 'student_exam_summaries', ['student_id'])
    op.create_index('ix_student_exam_summaries_class_id', 'student_exam_summaries', ['class_id'])


def downgrade() -> None:
    """Drop grading tables."""
    op.drop_table('student_exam_summaries')
    op.drop_table('student_subject_marks')
    op.drop_table('exam_term_mappings')
    op.drop_table('terms')
    op.drop_table('exam_subject_mappings')
    op.drop_table('examinations')
    op.drop_table('students')
    op.drop_table('staff')
    op.drop_table('subjects')
    op.drop_table('classes')

    conn = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(conn, checkfirst=True)
