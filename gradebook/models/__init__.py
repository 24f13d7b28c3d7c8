"""Database models package."""

from gradebook.models.academic import SchoolClass, Staff, Subject
from gradebook.models.exam import ExamSubjectMapping, ExamTermMapping, Examination, Term
from gradebook.models.marks import MarkRecord, PassingStatus, ReviewStatus
from gradebook.models.student import Student, StudentStatus
from gradebook.models.summary import ExamSummary, ResultStatus

__all__ = [
    # Reference data
    "SchoolClass",
    "Subject",
    "Staff",
    # Student
    "Student",
    "StudentStatus",
    # Exam definitions
    "Examination",
    "ExamSubjectMapping",
    "Term",
    "ExamTermMapping",
    # Marks
    "MarkRecord",
    "PassingStatus",
    "ReviewStatus",
    # Summaries
    "ExamSummary",
    "ResultStatus",
]
