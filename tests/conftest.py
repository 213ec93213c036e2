"""Shared fixtures: in-memory SQLite database, users and auth headers."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from examtrack.core.database import Base, SessionLocal, engine
from examtrack.core.security import create_access_token, hash_password
from examtrack.main import app
from examtrack.models import Exam, ExamStatus, ExamType, Result, User, UserRole
from examtrack.services.grading import grade_result

API = "/api/v1"
PASSWORD = "password123"


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def make_user(db, username: str, role: UserRole, **kwargs) -> User:
    user = User(
        name=kwargs.pop("name", username.title()),
        username=username,
        password_hash=hash_password(PASSWORD),
        role=role,
        is_active=kwargs.pop("is_active", True),
        **kwargs,
    )
    db.add(user)
    db.commit()
    return user


def make_exam(db, teacher: User, **kwargs) -> Exam:
    """Insert an exam directly, bypassing the future-date rule."""
    values = {
        "title": "Algebra Midterm",
        "subject": "Mathematics",
        "exam_type": ExamType.MIDTERM,
        "date": datetime.now(timezone.utc) + timedelta(days=7),
        "duration": 60,
        "total_marks": 100,
        "passing_marks": 40,
        "target_grades": ["10"],
        "target_sections": [],
        "target_students": [],
        "status": ExamStatus.SCHEDULED,
        "results_published": False,
    }
    values.update(kwargs)
    exam = Exam(teacher_id=teacher.id, created_by_id=teacher.id, **values)
    db.add(exam)
    db.commit()
    return exam


def make_result(db, exam: Exam, student: User, marks, grader: User | None = None) -> Result:
    marks = Decimal(str(marks))
    total = Decimal(exam.total_marks)
    result = Result(
        exam_id=exam.id,
        student_id=student.id,
        marks_obtained=marks,
        total_marks=total,
        graded_by_id=(grader or exam.teacher).id,
        submitted_at=datetime.now(timezone.utc),
        **grade_result(marks, total),
    )
    db.add(result)
    db.commit()
    return result


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.username, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(db) -> User:
    return make_user(db, "admin", UserRole.ADMIN, name="Admin User")


@pytest.fixture
def teacher(db) -> User:
    return make_user(db, "teacher", UserRole.TEACHER, name="John Teacher", teacher_code="T001")


@pytest.fixture
def other_teacher(db) -> User:
    return make_user(db, "teacher2", UserRole.TEACHER, name="Jane Teacher", teacher_code="T002")


@pytest.fixture
def student(db) -> User:
    return make_user(
        db, "student", UserRole.STUDENT,
        name="Sarah Student", student_code="S001", grade="10", section="A",
    )


@pytest.fixture
def other_student(db) -> User:
    return make_user(
        db, "student2", UserRole.STUDENT,
        name="Sam Student", student_code="S002", grade="11", section="B",
    )


@pytest.fixture
def exam(db, teacher) -> Exam:
    return make_exam(db, teacher)


@pytest.fixture
def past_exam(db, teacher) -> Exam:
    return make_exam(
        db, teacher,
        title="Physics Final",
        subject="Physics",
        exam_type=ExamType.FINAL,
        date=datetime.now(timezone.utc) - timedelta(days=3),
    )
