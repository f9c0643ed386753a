"""
Quota Guard

Rolling-window rate limits for user actions, by membership tier.

Limits and window lengths are configuration (core.config), not constants:
deployments have run both day/week windows and short test windows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import NotFoundError, QuotaExceededError, ValidationError
from models import Challenge, Submission, User

ACTION_SUBMISSION = "submission"
ACTION_CHALLENGE_CREATION = "challenge_creation"


@dataclass(frozen=True)
class QuotaPolicy:
    free_limit: int
    premium_limit: int
    window_minutes: int

    def limit_for(self, is_premium: bool) -> int:
        return self.premium_limit if is_premium else self.free_limit


@dataclass
class QuotaStatus:
    action: str
    current: int
    max: int
    remaining: int
    is_premium: bool
    window_minutes: int

    @property
    def exceeded(self) -> bool:
        return self.current >= self.max

    @property
    def period(self) -> str:
        if self.window_minutes % (24 * 60) == 0:
            days = self.window_minutes // (24 * 60)
            return f"{days} day" if days == 1 else f"{days} days"
        return f"{self.window_minutes} minutes"

    def to_dict(self) -> Dict:
        return {
            "action": self.action,
            "current": self.current,
            "max": self.max,
            "remaining": self.remaining,
            "isPremium": self.is_premium,
            "period": self.period,
            "windowMinutes": self.window_minutes,
        }


def quota_policy(action: str) -> QuotaPolicy:
    if action == ACTION_SUBMISSION:
        return QuotaPolicy(
            free_limit=settings.SUBMISSION_QUOTA_FREE,
            premium_limit=settings.SUBMISSION_QUOTA_PREMIUM,
            window_minutes=settings.SUBMISSION_QUOTA_WINDOW_MINUTES,
        )
    if action == ACTION_CHALLENGE_CREATION:
        return QuotaPolicy(
            free_limit=settings.CHALLENGE_QUOTA_FREE,
            premium_limit=settings.CHALLENGE_QUOTA_PREMIUM,
            window_minutes=settings.CHALLENGE_QUOTA_WINDOW_MINUTES,
        )
    raise ValidationError(f"Unknown quota action: {action}", field="action")


def _count_recent(db: Session, user_id: str, action: str, since: datetime, until: datetime) -> int:
    if action == ACTION_SUBMISSION:
        stmt = select(func.count(Submission.id)).where(
            Submission.athlete_id == user_id,
            Submission.submitted_at >= since,
            Submission.submitted_at <= until,
        )
    else:
        stmt = select(func.count(Challenge.id)).where(
            Challenge.coach_id == user_id,
            Challenge.created_at >= since,
            Challenge.created_at <= until,
        )
    return int(db.execute(stmt).scalar() or 0)


def check_quota(db: Session, user_id: str, action: str, now: Optional[datetime] = None) -> QuotaStatus:
    """
    Report usage of `action` by `user_id` within [now - window, now].

    A missing user is NotFound, never silently treated as free tier.
    """
    policy = quota_policy(action)

    is_premium = db.execute(
        select(User.is_premium_member).where(User.id == user_id)
    ).scalar_one_or_none()
    if is_premium is None:
        raise NotFoundError("User", user_id)
    is_premium = bool(is_premium)

    now = now or datetime.now(timezone.utc)
    since = now - timedelta(minutes=policy.window_minutes)
    current = _count_recent(db, user_id, action, since, now)
    limit = policy.limit_for(is_premium)

    return QuotaStatus(
        action=action,
        current=current,
        max=limit,
        remaining=max(0, limit - current),
        is_premium=is_premium,
        window_minutes=policy.window_minutes,
    )


def enforce_quota(db: Session, user_id: str, action: str, now: Optional[datetime] = None) -> QuotaStatus:
    """check_quota, raising QuotaExceededError when no capacity is left."""
    status = check_quota(db, user_id, action, now=now)
    if status.exceeded:
        noun = "challenge submission" if action == ACTION_SUBMISSION else "challenge creation"
        raise QuotaExceededError(
            f"{noun.capitalize()} quota exceeded. You can do {status.max} per {status.period}. "
            f"Current usage: {status.current}/{status.max}",
            quota=status.to_dict(),
        )
    return status
