"""
Tests for daily activity streaks.
"""
from datetime import date, timedelta

import pytest

from core.exceptions import ConflictError, NotFoundError
from models import User
from services.streak_tracker import bump_streak, next_streak_value, reset_stale_streaks

TODAY = date(2026, 5, 20)
YESTERDAY = TODAY - timedelta(days=1)


class TestNextStreakValue:
    def test_first_activity(self):
        assert next_streak_value(0, None, TODAY) == 1

    def test_same_day_unchanged(self):
        assert next_streak_value(4, TODAY, TODAY) == 4

    def test_consecutive_day_increments(self):
        assert next_streak_value(4, YESTERDAY, TODAY) == 5

    def test_gap_resets_to_one(self):
        assert next_streak_value(9, TODAY - timedelta(days=2), TODAY) == 1


class TestBumpStreak:
    def test_first_bump(self, db_session, athlete):
        assert bump_streak(db_session, athlete.id, today=TODAY) == 1
        db_session.commit()

        user = db_session.get(User, athlete.id)
        assert user.current_streak == 1
        assert user.last_streak_date == TODAY

    def test_continuity_over_days(self, db_session, athlete):
        for offset in range(5):
            bump_streak(db_session, athlete.id, today=TODAY + timedelta(days=offset))
        db_session.commit()

        assert db_session.get(User, athlete.id).current_streak == 5

    def test_multiple_bumps_same_day(self, db_session, athlete):
        bump_streak(db_session, athlete.id, today=TODAY)
        bump_streak(db_session, athlete.id, today=TODAY)
        db_session.commit()

        assert db_session.get(User, athlete.id).current_streak == 1

    def test_gap_resets(self, db_session, make_user):
        make_user("streaky", current_streak=7, last_streak_date=TODAY - timedelta(days=3))
        assert bump_streak(db_session, "streaky", today=TODAY) == 1

    def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            bump_streak(db_session, "ghost", today=TODAY)

    def test_gives_up_after_repeated_conflicts(self, db_session, athlete, monkeypatch):
        """Every compare-and-swap loses: the caller gets a conflict, not a wrong value."""
        original_execute = db_session.execute

        class _NoRows:
            rowcount = 0

        def execute(statement, *args, **kwargs):
            if getattr(statement, "is_dml", False):
                return _NoRows()
            return original_execute(statement, *args, **kwargs)

        monkeypatch.setattr(db_session, "execute", execute)
        with pytest.raises(ConflictError):
            bump_streak(db_session, athlete.id, today=TODAY)


class TestResetStaleStreaks:
    def test_resets_only_stale_users(self, db_session, make_user):
        make_user("active-today", current_streak=3, last_streak_date=TODAY)
        make_user("active-yesterday", current_streak=2, last_streak_date=YESTERDAY)
        make_user("lapsed", current_streak=6, last_streak_date=TODAY - timedelta(days=2))
        make_user("never", current_streak=0)

        reset = reset_stale_streaks(db_session, today=TODAY)
        db_session.commit()

        assert reset == ["lapsed"]
        assert db_session.get(User, "lapsed").current_streak == 0
        assert db_session.get(User, "active-today").current_streak == 3
        assert db_session.get(User, "active-yesterday").current_streak == 2

    def test_nothing_to_reset(self, db_session, athlete):
        assert reset_stale_streaks(db_session, today=TODAY) == []
