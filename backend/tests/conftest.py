"""
Pytest configuration for ExamGuard tests
"""
import asyncio
import os
import sys
from datetime import timedelta

import pytest

os.environ.setdefault("SQLALCHEMY_DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("EXAM_SWEEP_INPROCESS", "false")

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

from examguard.core.database import Base, SessionLocal, engine
from examguard.core.security import create_access_token
from examguard import models  # noqa: F401
from examguard.models.exam import Exam
from examguard.models.user import User, ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER
from examguard.utils.timezone import get_utc_now


@pytest.fixture(autouse=True)
def _tables():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _make_user(db, email, role, full_name=None):
    user = User(email=email, full_name=full_name or email.split("@")[0].title(), role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def student(db):
    return _make_user(db, "student@example.com", ROLE_STUDENT, "Sam Student")


@pytest.fixture
def other_student(db):
    return _make_user(db, "other@example.com", ROLE_STUDENT, "Olive Other")


@pytest.fixture
def teacher(db):
    return _make_user(db, "teacher@example.com", ROLE_TEACHER, "Tara Teacher")


@pytest.fixture
def other_teacher(db):
    return _make_user(db, "teacher2@example.com", ROLE_TEACHER, "Theo Teacher")


@pytest.fixture
def admin(db):
    return _make_user(db, "admin@example.com", ROLE_ADMIN, "Ada Admin")


@pytest.fixture
def make_exam(db, teacher):
    def _make(exam_id="EXAM-1", start_offset=timedelta(hours=-1), end_offset=timedelta(hours=2),
              duration=60, is_active=True, created_by=None):
        now = get_utc_now()
        exam = Exam(
            exam_id=exam_id,
            title=f"Exam {exam_id}",
            duration=duration,
            start_date=now + start_offset,
            end_date=now + end_offset,
            is_active=is_active,
            created_by=created_by or teacher.id,
        )
        db.add(exam)
        db.commit()
        db.refresh(exam)
        return exam
    return _make


@pytest.fixture
def exam(make_exam):
    return make_exam()


def auth_headers(user):
    token = create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


async def wait_until(condition, timeout: float = 2.0, interval: float = 0.005):
    """Yield to the event loop (and worker threads) until condition() holds"""
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(interval)


@pytest.fixture
def client():
    """Test client without startup events (no Redis, no sweep scheduler)"""
    from examguard.main import app
    return TestClient(app)
