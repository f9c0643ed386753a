"""
Tests for the athlete submission workflow.
"""
from datetime import date

import pytest
from sqlalchemy import func, select

from conftest import principal_for
from core import events
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, QuotaExceededError, ValidationError
from models import Notification, Submission, User
from services import challenge_submission
from services.challenge_submission import (
    get_submission_status,
    list_pending_submissions,
    submit_challenge,
)

TODAY = date(2026, 5, 20)
VIDEO = "https://cdn.example.com/videos/juggle.mp4"


@pytest.fixture
def premium_athlete(make_user):
    user = make_user("athlete-premium", name="Pia Premium", is_premium_member=True)
    return principal_for(user.id, "athlete", user.name)


class TestSubmitChallenge:
    def test_creates_pending_submission(self, db_session, athlete_principal, challenge):
        submission = submit_challenge(db_session, athlete_principal, challenge.id, VIDEO, today=TODAY)

        assert submission.id is not None
        assert submission.status == "pending"
        assert submission.athlete_name == "Ana Athlete"
        assert submission.video_url == VIDEO
        assert submission.reviewed_at is None

    def test_notifies_coach_and_bumps_streak(self, db_session, athlete_principal, challenge, coach):
        submission = submit_challenge(db_session, athlete_principal, challenge.id, VIDEO, today=TODAY)

        notification = db_session.execute(select(Notification)).scalar_one()
        assert notification.type == "challenge_submission"
        assert notification.from_user_id == athlete_principal.subject_id
        assert notification.to_user_id == coach.id
        assert notification.submission_id == submission.id
        assert notification.is_read is False

        athlete = db_session.get(User, athlete_principal.subject_id)
        assert athlete.current_streak == 1
        assert athlete.last_streak_date == TODAY

    def test_name_falls_back_to_profile(self, db_session, athlete, challenge):
        principal = principal_for(athlete.id, "athlete", name=None)
        submission = submit_challenge(db_session, principal, challenge.id, VIDEO)
        assert submission.athlete_name == "Ana Athlete"

    def test_only_athletes_may_submit(self, db_session, coach_principal, challenge):
        with pytest.raises(ForbiddenError):
            submit_challenge(db_session, coach_principal, challenge.id, VIDEO)

    def test_scout_forbidden(self, db_session, make_user, challenge):
        make_user("scout-1", role="scout")
        with pytest.raises(ForbiddenError):
            submit_challenge(db_session, principal_for("scout-1", "scout"), challenge.id, VIDEO)

    @pytest.mark.parametrize("video_url", [None, "", "   "])
    def test_video_url_required(self, db_session, athlete_principal, challenge, video_url):
        with pytest.raises(ValidationError):
            submit_challenge(db_session, athlete_principal, challenge.id, video_url)

    def test_missing_challenge(self, db_session, athlete_principal):
        with pytest.raises(NotFoundError):
            submit_challenge(db_session, athlete_principal, 9999, VIDEO)

    def test_free_athlete_daily_quota(self, db_session, athlete_principal, coach, make_challenge):
        first = make_challenge(coach.id, title="First")
        second = make_challenge(coach.id, title="Second")
        submit_challenge(db_session, athlete_principal, first.id, VIDEO)

        with pytest.raises(QuotaExceededError) as exc_info:
            submit_challenge(db_session, athlete_principal, second.id, VIDEO)
        assert exc_info.value.detail["quota"]["current"] == 1

        count = db_session.execute(select(func.count(Submission.id))).scalar()
        assert count == 1

    def test_duplicate_returns_existing(self, db_session, premium_athlete, challenge):
        original = submit_challenge(db_session, premium_athlete, challenge.id, VIDEO)

        with pytest.raises(ConflictError) as exc_info:
            submit_challenge(db_session, premium_athlete, challenge.id, "https://cdn.example.com/other.mp4")

        detail = exc_info.value.detail
        assert exc_info.value.status_code == 409
        assert detail["submission"]["id"] == original.id
        assert detail["submission"]["video_url"] == VIDEO
        assert db_session.execute(select(func.count(Submission.id))).scalar() == 1

    def test_concurrent_duplicate_collapses_to_conflict(self, db_session, premium_athlete, challenge, monkeypatch):
        """The unique constraint catches a submit that slipped past the pre-check."""
        original = submit_challenge(db_session, premium_athlete, challenge.id, VIDEO)

        real_find = challenge_submission.find_submission
        calls = {"n": 0}

        def find_after_first_miss(db, challenge_id, athlete_id):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return real_find(db, challenge_id, athlete_id)

        monkeypatch.setattr(challenge_submission, "find_submission", find_after_first_miss)
        with pytest.raises(ConflictError) as exc_info:
            submit_challenge(db_session, premium_athlete, challenge.id, VIDEO)

        assert exc_info.value.detail["submission"]["id"] == original.id
        assert db_session.execute(select(func.count(Submission.id))).scalar() == 1

    def test_side_effect_failure_keeps_submission(self, db_session, athlete_principal, challenge, monkeypatch):
        def broken_streak(*args, **kwargs):
            raise RuntimeError("streak store unavailable")

        monkeypatch.setattr(challenge_submission, "bump_streak", broken_streak)
        submission = submit_challenge(db_session, athlete_principal, challenge.id, VIDEO, today=TODAY)

        assert db_session.get(Submission, submission.id).status == "pending"
        assert db_session.execute(select(func.count(Notification.id))).scalar() == 1
        assert db_session.get(User, athlete_principal.subject_id).current_streak == 0

    def test_notification_failure_keeps_submission(self, db_session, athlete_principal, challenge, monkeypatch):
        def broken_notify(*args, **kwargs):
            raise RuntimeError("notification sink down")

        received = []

        def handler(**payload):
            received.append(payload)

        monkeypatch.setattr(challenge_submission, "record_notification", broken_notify)
        events.subscribe("notification.created", handler)
        try:
            submission = submit_challenge(db_session, athlete_principal, challenge.id, VIDEO, today=TODAY)
        finally:
            events.unsubscribe("notification.created", handler)

        assert db_session.get(Submission, submission.id) is not None
        assert db_session.get(User, athlete_principal.subject_id).current_streak == 1
        assert received == []

    def test_coach_is_announced_after_commit(self, db_session, athlete_principal, challenge):
        received = []

        def handler(**payload):
            received.append(payload)

        events.subscribe("notification.created", handler)
        try:
            submission = submit_challenge(db_session, athlete_principal, challenge.id, VIDEO, today=TODAY)
        finally:
            events.unsubscribe("notification.created", handler)

        assert len(received) == 1
        assert received[0]["submission_id"] == submission.id
        assert received[0]["to_user_id"] == challenge.coach_id
        assert db_session.get(Notification, received[0]["notification_id"]) is not None


class TestSubmissionQueries:
    def test_status_of_own_submission(self, db_session, athlete_principal, challenge):
        submit_challenge(db_session, athlete_principal, challenge.id, VIDEO)
        status = get_submission_status(db_session, athlete_principal, challenge.id)
        assert status.status == "pending"

    def test_status_when_not_submitted(self, db_session, athlete_principal, challenge):
        with pytest.raises(NotFoundError):
            get_submission_status(db_session, athlete_principal, challenge.id)

    def test_pending_queue_is_scoped_to_coach(
        self, db_session, coach_principal, other_coach, make_challenge, challenge, athlete, make_user, make_submission
    ):
        other_challenge = make_challenge(other_coach.id, title="Other coach drill")
        make_user("athlete-2")
        make_submission(challenge.id, athlete.id)
        make_submission(challenge.id, "athlete-2", status="approved")
        make_submission(other_challenge.id, athlete.id)

        pending = list_pending_submissions(db_session, coach_principal)

        assert len(pending) == 1
        assert pending[0]["challenge_id"] == challenge.id
        assert pending[0]["challenge_title"] == challenge.title
        assert pending[0]["athlete_id"] == athlete.id

    def test_pending_queue_requires_coach(self, db_session, athlete_principal):
        with pytest.raises(ForbiddenError):
            list_pending_submissions(db_session, athlete_principal)
