"""
Pytest configuration and fixtures

Tests run against an in-memory SQLite database. The schema is created
fresh for every test and dropped afterwards, so nothing leaks between
tests.
"""
import os
import sys

# Must be set before core.config is imported anywhere.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-findplayer-challenges-0123456789"
os.environ["LOG_FORMAT"] = "text"

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from core.auth import Principal  # noqa: E402
from core.database import Base, engine  # noqa: E402
from core.security import create_access_token  # noqa: E402
from models import Challenge, Submission, User  # noqa: E402


@pytest.fixture(scope="function")
def db_session():
    """Fresh schema and session per test."""
    Base.metadata.create_all(engine)
    session = Session(bind=engine)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def make_user(db_session):
    def _make_user(user_id, role="athlete", name=None, is_premium_member=False, **fields):
        user = User(
            id=user_id,
            role=role,
            name=name or f"{role.title()} {user_id}",
            is_premium_member=is_premium_member,
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture
def make_challenge(db_session):
    def _make_challenge(coach_id, title="Juggle 50 times", xp_value=10, created_at=None):
        challenge = Challenge(
            coach_id=coach_id,
            title=title,
            description="Film it in one take",
            xp_value=xp_value,
        )
        if created_at is not None:
            challenge.created_at = created_at
        db_session.add(challenge)
        db_session.commit()
        return challenge
    return _make_challenge


@pytest.fixture
def make_submission(db_session):
    def _make_submission(challenge_id, athlete_id, status="pending", submitted_at=None, **fields):
        submission = Submission(
            challenge_id=challenge_id,
            athlete_id=athlete_id,
            athlete_name=f"Athlete {athlete_id}",
            video_url=f"https://cdn.example.com/{athlete_id}/{challenge_id}.mp4",
            status=status,
            **fields,
        )
        if submitted_at is not None:
            submission.submitted_at = submitted_at
        db_session.add(submission)
        db_session.commit()
        return submission
    return _make_submission


@pytest.fixture
def coach(make_user):
    return make_user("coach-1", role="coach", name="Carla Coach")


@pytest.fixture
def other_coach(make_user):
    return make_user("coach-2", role="coach", name="Omar Coach")


@pytest.fixture
def athlete(make_user):
    return make_user("athlete-1", role="athlete", name="Ana Athlete")


@pytest.fixture
def challenge(coach, make_challenge):
    return make_challenge(coach.id, xp_value=10)


def principal_for(user_id, role, name=None):
    return Principal(subject_id=user_id, role=role, custom_role=role, name=name)


@pytest.fixture
def coach_principal(coach):
    return principal_for(coach.id, "coach", coach.name)


@pytest.fixture
def athlete_principal(athlete):
    return principal_for(athlete.id, "athlete", athlete.name)


def auth_headers(user_id, role, name=None):
    claims = {"sub": user_id, "custom:role": role}
    if name:
        claims["given_name"] = name
    return {"Authorization": f"Bearer {create_access_token(claims)}"}


@pytest.fixture
def client(db_session):
    """TestClient sharing the test session through dependency overrides."""
    from fastapi.testclient import TestClient
    from core.database import get_db
    from main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def hours_ago(hours):
    return datetime.now(timezone.utc) - timedelta(hours=hours)
