"""
Streak Tracker

Consecutive-calendar-day activity streak per user.

bump_streak() only runs on activity, so decay for idle users is handled by
reset_stale_streaks(), run daily from the scheduler.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError
from models import User

logger = logging.getLogger(__name__)

# Compare-and-swap attempts before giving up under contention.
MAX_CAS_ATTEMPTS = 3


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def next_streak_value(current_streak: int, last_streak_date: Optional[date], today: date) -> int:
    """
    Same day: unchanged. Yesterday: +1. Anything else (gap or never): 1.
    """
    if last_streak_date == today:
        return current_streak
    if last_streak_date == today - timedelta(days=1):
        return current_streak + 1
    return 1


def bump_streak(db: Session, user_id: str, today: Optional[date] = None) -> int:
    """
    Record activity for `today` and return the new streak value.

    The write is conditioned on the values that were read, so two concurrent
    bumps cannot both increment from the same starting point. Flushes but
    does not commit.
    """
    today = today or utc_today()

    for _ in range(MAX_CAS_ATTEMPTS):
        row = db.execute(
            select(User.current_streak, User.last_streak_date).where(User.id == user_id)
        ).one_or_none()
        if row is None:
            raise NotFoundError("User", user_id)

        current_streak, last_streak_date = row.current_streak or 0, row.last_streak_date
        new_streak = next_streak_value(current_streak, last_streak_date, today)

        last_date_clause = (
            User.last_streak_date.is_(None)
            if last_streak_date is None
            else User.last_streak_date == last_streak_date
        )
        result = db.execute(
            update(User)
            .where(User.id == user_id, User.current_streak == row.current_streak, last_date_clause)
            .values(current_streak=new_streak, last_streak_date=today)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            user = db.get(User, user_id)
            if user is not None:
                db.expire(user, ["current_streak", "last_streak_date"])
            logger.debug(f"Streak for {user_id}: {current_streak} -> {new_streak}")
            return new_streak

    raise ConflictError(f"Streak update for user {user_id} kept losing to concurrent writers")


def reset_stale_streaks(db: Session, today: Optional[date] = None) -> List[str]:
    """
    Zero the streak of every user whose last activity is neither today nor
    yesterday. Returns the ids that were reset. Flushes but does not commit.
    """
    today = today or utc_today()
    yesterday = today - timedelta(days=1)

    stale = (
        User.last_streak_date.is_not(None),
        User.last_streak_date != today,
        User.last_streak_date != yesterday,
        User.current_streak != 0,
    )
    user_ids = list(db.execute(select(User.id).where(*stale)).scalars())
    if not user_ids:
        return []

    db.execute(
        update(User)
        .where(User.id.in_(user_ids), *stale)
        .values(current_streak=0)
        .execution_options(synchronize_session=False)
    )
    db.expire_all()
    logger.info(f"Streaks reset for {len(user_ids)} users.")
    return user_ids
