"""Test configuration and fixtures."""

import os

# Point the application engine at SQLite before gradebook is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import date
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gradebook.database import Base, get_db
from gradebook import models  # noqa: F401
from gradebook.auth.models import User
from gradebook.auth.service import AuthService
from gradebook.models import (
    AcademicYear, AssessmentType, Grade, GradeLevel, GradeSubmission, School, SchoolClass, Semester,
    Student, Subject, SubmissionStatus, TeachingAssignment, UserRole,
)


# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture
def engine():
    """Create a fresh test database for every test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Create test database session."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """TestClient whose requests use the test database."""
    from gradebook.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(db_session):
    """Build a bearer header for a user."""
    def make(user):
        token = AuthService(db_session).create_access_token(user)
        return {"Authorization": f"Bearer {token}"}
    return make


def _user(db_session, email, full_name, role, school_id, password="Secret123!"):
    user = User(email=email, full_name=full_name, role=role, school_id=school_id, is_active=True)
    user.set_password(password)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def make_user(db_session):
    """Create extra users: ``make_user(email, name, role, school_id)``."""
    def make(email, full_name, role, school_id=None):
        return _user(db_session, email, full_name, role, school_id)
    return make


@pytest.fixture
def sample_school(db_session):
    """Create a sample school for testing."""
    school = School(name="Test Secondary School")
    db_session.add(school)
    db_session.commit()
    db_session.refresh(school)
    return school


@pytest.fixture
def academic_year(db_session, sample_school):
    year = AcademicYear(
        school_id=sample_school.id,
        name="2025/2026",
        start_date=date(2025, 9, 1),
        end_date=date(2026, 6, 30),
    )
    db_session.add(year)
    db_session.commit()
    db_session.refresh(year)
    return year


@pytest.fixture
def semester_one(db_session, academic_year):
    semester = Semester(academic_year_id=academic_year.id, number=1, name="Semester 1")
    db_session.add(semester)
    db_session.commit()
    db_session.refresh(semester)
    return semester


@pytest.fixture
def semester_two(db_session, academic_year):
    semester = Semester(academic_year_id=academic_year.id, number=2, name="Semester 2")
    db_session.add(semester)
    db_session.commit()
    db_session.refresh(semester)
    return semester


@pytest.fixture
def teacher(db_session, sample_school):
    return _user(db_session, "teacher@test.com", "Math Teacher", UserRole.teacher, sample_school.id)


@pytest.fixture
def class_head(db_session, sample_school):
    return _user(db_session, "head@test.com", "Class Head", UserRole.class_head, sample_school.id)


@pytest.fixture
def store_keeper(db_session, sample_school):
    return _user(db_session, "store@test.com", "Store Keeper", UserRole.store_house, sample_school.id)


@pytest.fixture
def school_class(db_session, sample_school, class_head):
    grade_level = GradeLevel(school_id=sample_school.id, name="Grade 9", level=9)
    db_session.add(grade_level)
    db_session.commit()
    school_class = SchoolClass(grade_level_id=grade_level.id, name="9A", class_head_id=class_head.id)
    db_session.add(school_class)
    db_session.commit()
    db_session.refresh(school_class)
    return school_class


@pytest.fixture
def assessment_types(db_session, sample_school):
    """Quiz (20%), Mid-Term (30%) and Final (50%)."""
    types = [
        AssessmentType(school_id=sample_school.id, name="Quiz", default_weight_percent=20, max_score=20),
        AssessmentType(school_id=sample_school.id, name="Mid-Term", default_weight_percent=30, max_score=50),
        AssessmentType(school_id=sample_school.id, name="Final", default_weight_percent=50, max_score=100),
    ]
    db_session.add_all(types)
    db_session.commit()
    return {t.name: t for t in types}


@pytest.fixture
def subjects(db_session, sample_school, school_class, teacher, class_head):
    """Mathematics taught by the teacher, English by the class head."""
    math = Subject(school_id=sample_school.id, name="Mathematics")
    english = Subject(school_id=sample_school.id, name="English")
    db_session.add_all([math, english])
    db_session.commit()
    db_session.add_all([
        TeachingAssignment(teacher_id=teacher.id, class_id=school_class.id, subject_id=math.id),
        TeachingAssignment(teacher_id=class_head.id, class_id=school_class.id, subject_id=english.id),
    ])
    db_session.commit()
    return {"Mathematics": math, "English": english}


@pytest.fixture
def students(db_session, sample_school, school_class):
    """Three enrolled students in id order."""
    created = []
    for i, (name, sex) in enumerate([("Alem Tesfaye", "F"), ("Bruk Haile", "M"), ("Dina Yusuf", "F")], start=1):
        user = _user(db_session, f"student{i}@test.com", name, UserRole.student, sample_school.id)
        student = Student(
            user_id=user.id,
            class_id=school_class.id,
            student_code=f"STU-{i:03d}",
            sex=sex,
            date_of_birth=date(2010, 3, i),
            date_of_admission=date(2022, 9, 1),
        )
        db_session.add(student)
        db_session.commit()
        db_session.refresh(student)
        created.append(student)
    return created


@pytest.fixture
def add_grades(db_session, school_class, teacher):
    """Record raw scores: ``{student: {assessment_type: score}}``."""
    def add(subject, semester, scores):
        for student, components in scores.items():
            for assessment_type, score in components.items():
                db_session.add(Grade(
                    student_id=student.id,
                    class_id=school_class.id,
                    subject_id=subject.id,
                    semester_id=semester.id,
                    assessment_type_id=assessment_type.id,
                    score=score,
                    max_score=assessment_type.max_score,
                    entered_by=teacher.id,
                ))
        db_session.commit()
    return add


@pytest.fixture
def set_submission(db_session, school_class):
    """Create or move the submission of a subject to ``status``."""
    def set_status(subject, semester, status=SubmissionStatus.submitted):
        submission = (
            db_session.query(GradeSubmission)
            .filter_by(class_id=school_class.id, subject_id=subject.id, semester_id=semester.id)
            .first()
        )
        if submission is None:
            submission = GradeSubmission(class_id=school_class.id, subject_id=subject.id, semester_id=semester.id)
            db_session.add(submission)
        submission.status = status
        db_session.commit()
        db_session.refresh(submission)
        return submission
    return set_status


@pytest.fixture
def graded_semester(students, subjects, assessment_types, semester_one, add_grades, set_submission):
    """Semester one fully graded and submitted for both subjects.

    With the default weights (Quiz 20, Mid-Term 30, Final 50):

    ============  ===========  =======  =====  =======
    student       Mathematics  English  total  average
    ============  ===========  =======  =====  =======
    Alem          82           70       152    76
    Bruk          42           46       88     44
    Dina          70           82       152    76
    ============  ===========  =======  =====  =======
    """
    quiz, mid, final = assessment_types["Quiz"], assessment_types["Mid-Term"], assessment_types["Final"]
    alem, bruk, dina = students
    add_grades(subjects["Mathematics"], semester_one, {
        alem: {quiz: 18, mid: 40, final: 80},   # 18 + 24 + 40
        bruk: {quiz: 10, mid: 20, final: 40},   # 10 + 12 + 20
        dina: {quiz: 14, mid: 35, final: 70},   # 14 + 21 + 35
    })
    add_grades(subjects["English"], semester_one, {
        alem: {quiz: 14, mid: 35, final: 70},   # 14 + 21 + 35
        bruk: {quiz: 12, mid: 20, final: 44},   # 12 + 12 + 22
        dina: {quiz: 18, mid: 40, final: 80},   # 18 + 24 + 40
    })
    set_submission(subjects["Mathematics"], semester_one)
    set_submission(subjects["English"], semester_one, SubmissionStatus.approved)
    return semester_one
