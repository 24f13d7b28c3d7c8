"""Shared fixtures: in-memory SQLite database, seeded school and API client."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_SCHEDULER"] = "false"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gradebook.core.database import Base, enable_sqlite_savepoints, get_db
from gradebook.main import app
from gradebook.models import (
    ExamSubjectMapping,
    ExamTermMapping,
    Examination,
    SchoolClass,
    Staff,
    Student,
    StudentStatus,
    Subject,
    Term,
)

SCHOOL_ID = 1
OTHER_SCHOOL_ID = 2


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(test_engine)
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)()
    yield session
    session.close()


class SeedData:
    """Handles to the seeded rows."""

    def __init__(self, **items):
        self.__dict__.update(items)


@pytest.fixture
def seed(db: Session) -> SeedData:
    """
    One school with class 10-A (three active students, one inactive),
    class 10-B (one student), three subjects and three exams.

    Every exam maps Math and Science out of 100 and English out of 50
    (English passing marks 20). Term 1 weights the exams 20/20/60.
    """
    class_a = SchoolClass(school_id=SCHOOL_ID, class_name="10", section="A", academic_year="2025-26")
    class_b = SchoolClass(school_id=SCHOOL_ID, class_name="10", section="B", academic_year="2025-26")
    db.add_all([class_a, class_b])
    db.flush()

    # Admission numbers deliberately out of insertion order
    alice = Student(
        school_id=SCHOOL_ID, class_id=class_a.id, student_name="Alice",
        roll_number="1", admission_no="ADM003", academic_year="2025-26",
    )
    bala = Student(
        school_id=SCHOOL_ID, class_id=class_a.id, student_name="Bala",
        roll_number="2", admission_no="ADM001", academic_year="2025-26",
    )
    chen = Student(
        school_id=SCHOOL_ID, class_id=class_a.id, student_name="Chen",
        roll_number="3", admission_no="ADM002", academic_year="2025-26",
    )
    dropped = Student(
        school_id=SCHOOL_ID, class_id=class_a.id, student_name="Dev",
        roll_number="4", admission_no="ADM004", academic_year="2025-26",
        status=StudentStatus.TRANSFERRED,
    )
    other = Student(
        school_id=SCHOOL_ID, class_id=class_b.id, student_name="Esha",
        roll_number="1", admission_no="ADM005", academic_year="2025-26",
    )
    db.add_all([alice, bala, chen, dropped, other])

    math = Subject(school_id=SCHOOL_ID, name="Mathematics", color="#1f77b4")
    science = Subject(school_id=SCHOOL_ID, name="Science", color="#2ca02c")
    english = Subject(school_id=SCHOOL_ID, name="English", color="#d62728")
    db.add_all([math, science, english])

    staff_member = Staff(school_id=SCHOOL_ID, full_name="Mrs. Rao", staff_code="T01")
    db.add(staff_member)
    db.flush()

    exams = []
    for name in ("Unit Test 1", "Unit Test 2", "Half Yearly"):
        exam = Examination(school_id=SCHOOL_ID, exam_name=name, academic_year="2025-26")
        db.add(exam)
        db.flush()
        db.add_all([
            ExamSubjectMapping(school_id=SCHOOL_ID, exam_id=exam.id, subject_id=math.id, max_marks=Decimal("100")),
            ExamSubjectMapping(school_id=SCHOOL_ID, exam_id=exam.id, subject_id=science.id, max_marks=Decimal("100")),
            ExamSubjectMapping(
                school_id=SCHOOL_ID, exam_id=exam.id, subject_id=english.id,
                max_marks=Decimal("50"), pass_marks=Decimal("20"),
            ),
        ])
        exams.append(exam)

    term = Term(school_id=SCHOOL_ID, term_name="Term 1", academic_year="2025-26")
    db.add(term)
    db.flush()
    for exam, weight in zip(exams, ("20", "20", "60")):
        db.add(ExamTermMapping(school_id=SCHOOL_ID, term_id=term.id, exam_id=exam.id, weightage=Decimal(weight)))

    db.commit()

    return SeedData(
        school_id=SCHOOL_ID,
        class_a=class_a,
        class_b=class_b,
        alice=alice,
        bala=bala,
        chen=chen,
        dropped=dropped,
        other=other,
        math=math,
        science=science,
        english=english,
        subjects=[math, science, english],
        staff_member=staff_member,
        exam=exams[0],
        exams=exams,
        term=term,
    )


@pytest.fixture
def client(db: Session, seed: SeedData):
    """API client sharing the test session."""

    def override_get_db():
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def headers(seed: SeedData) -> dict[str, str]:
    return {"X-School-Id": str(seed.school_id), "X-Staff-Id": str(seed.staff_member.id)}


@pytest.fixture
def enter_marks(db: Session, seed: SeedData):
    """Enter marks for one student: enter_marks(student, {subject: obtained}, exam=None)."""
    from gradebook.services.marks import MarkService

    def _enter(student, marks_by_subject, exam=None):
        exam = exam or seed.exam
        service = MarkService(db)
        for subject, obtained in marks_by_subject.items():
            service.upsert_marks(seed.school_id, exam.id, student.id, subject.id, None, obtained)

    return _enter
