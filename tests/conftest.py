# tests/conftest.py
"""
Shared fixtures.

- In-memory SQLite (StaticPool) with the schema built from Base.metadata
- `school` seeds two tenants:
    school 1: a CBC class (Grade 6) and an 8-4-4 class (Form 2), term 1 / term 2
    school 2: a minimal class/term/student/assessment for tenant isolation checks
- `client` is a TestClient whose get_db yields the same session as `db`
"""

import os

# point the app engine at SQLite before anything imports database.db
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite://")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from database.db import Base, get_db
from models.academic import AcademicYear, Term
from models.assessments import AssessmentDefinition
from models.class_subjects import ClassSubject
from models.classes import Class
from models.enrollments import StudentClass
from models.enums import AssessmentType, Curriculum, EnrollmentStatus
from models.students import Student
from models.subjects import Subject

SCHOOL_A = 1
SCHOOL_B = 2
TEACHER_ID = 99

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _add(db, obj):
    db.add(obj)
    db.flush()
    return obj


def _student(db, school_id, admission_no, first, last):
    return _add(db, Student(admission_no=admission_no, first_name=first, last_name=last, school_id=school_id))


def _enroll(db, student, klass, year, status=EnrollmentStatus.ACTIVE):
    return _add(db, StudentClass(
        student_id=student.id,
        class_id=klass.id,
        academic_year_id=year.id,
        status=status,
        school_id=student.school_id,
    ))


def _assessment(db, name, class_subject, max_marks, type=AssessmentType.CAT):
    return _add(db, AssessmentDefinition(
        name=name,
        type=type,
        max_marks=max_marks,
        term_id=class_subject.term_id,
        class_subject_id=class_subject.id,
        school_id=class_subject.school_id,
    ))


@pytest.fixture()
def school(db):
    s = SimpleNamespace()

    # ---------------- school A ----------------
    s.year = _add(db, AcademicYear(year=2025, school_id=SCHOOL_A))
    s.term1 = _add(db, Term(name="Term 1", term_number=1, academic_year_id=s.year.id, school_id=SCHOOL_A))
    s.term2 = _add(db, Term(name="Term 2", term_number=2, academic_year_id=s.year.id, school_id=SCHOOL_A))

    s.grade6 = _add(db, Class(name="Grade 6", level="GRADE_6", curriculum=Curriculum.CBC, school_id=SCHOOL_A))
    s.form2 = _add(db, Class(name="Form 2", level="FORM_2", curriculum=Curriculum.EIGHT_FOUR_FOUR, school_id=SCHOOL_A))

    s.math = _add(db, Subject(name="Mathematics", code="MAT", school_id=SCHOOL_A))
    s.english = _add(db, Subject(name="English", code="ENG", school_id=SCHOOL_A))
    s.science = _add(db, Subject(name="Science", code="SCI", school_id=SCHOOL_A))

    def offer(klass, subject):
        return _add(db, ClassSubject(
            class_id=klass.id, subject_id=subject.id, term_id=s.term1.id, school_id=SCHOOL_A,
        ))

    s.g6_math = offer(s.grade6, s.math)
    s.f2_math = offer(s.form2, s.math)
    s.f2_english = offer(s.form2, s.english)
    s.f2_science = offer(s.form2, s.science)   # offered, never assessed

    # CBC: two 50-mark CATs in Mathematics
    s.g6_cat1 = _assessment(db, "CAT 1", s.g6_math, 50)
    s.g6_cat2 = _assessment(db, "CAT 2", s.g6_math, 50)

    # 8-4-4
    s.midterm = _assessment(db, "Midterm", s.f2_math, 100, AssessmentType.MIDTERM)
    s.english_exam = _assessment(db, "End of Term", s.f2_english, 100, AssessmentType.END_OF_TERM)
    s.english_oral = _assessment(db, "Oral", s.f2_english, None, AssessmentType.COMPETENCY_BASED)

    s.g6_students = [
        _student(db, SCHOOL_A, "G6-001", "Amani", "Wanjiru"),
        _student(db, SCHOOL_A, "G6-002", "Baraka", "Otieno"),
        _student(db, SCHOOL_A, "G6-003", "Chebet", "Kiprop"),
    ]
    for st in s.g6_students:
        _enroll(db, st, s.grade6, s.year)

    s.f2_students = [
        _student(db, SCHOOL_A, "F2-001", "David", "Mwangi"),
        _student(db, SCHOOL_A, "F2-002", "Esther", "Achieng"),
        _student(db, SCHOOL_A, "F2-003", "Faith", "Njeri"),
        _student(db, SCHOOL_A, "F2-004", "George", "Kamau"),
        _student(db, SCHOOL_A, "F2-005", "Halima", "Hassan"),
    ]
    for st in s.f2_students:
        _enroll(db, st, s.form2, s.year)

    s.transferred = _student(db, SCHOOL_A, "F2-099", "Ian", "Mutua")
    _enroll(db, s.transferred, s.form2, s.year, status=EnrollmentStatus.TRANSFERRED)

    # ---------------- school B ----------------
    s.b_year = _add(db, AcademicYear(year=2025, school_id=SCHOOL_B))
    s.b_term = _add(db, Term(name="Term 1", term_number=1, academic_year_id=s.b_year.id, school_id=SCHOOL_B))
    s.b_class = _add(db, Class(name="Form 1", level="FORM_1", curriculum=Curriculum.EIGHT_FOUR_FOUR, school_id=SCHOOL_B))
    s.b_subject = _add(db, Subject(name="Mathematics", code="MAT", school_id=SCHOOL_B))
    s.b_class_subject = _add(db, ClassSubject(
        class_id=s.b_class.id, subject_id=s.b_subject.id, term_id=s.b_term.id, school_id=SCHOOL_B,
    ))
    s.b_assessment = _assessment(db, "Midterm", s.b_class_subject, 100, AssessmentType.MIDTERM)
    # same admission number as a school A student: unique per school only
    s.b_student = _student(db, SCHOOL_B, "F2-001", "Juma", "Ali")
    _enroll(db, s.b_student, s.b_class, s.b_year)

    db.commit()
    return s


@pytest.fixture()
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def session_factory(db):
    return TestingSessionLocal


@pytest.fixture()
def headers():
    return {"X-School-Id": str(SCHOOL_A), "X-User-Id": str(TEACHER_ID)}
