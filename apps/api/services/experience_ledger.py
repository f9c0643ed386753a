"""
Experience Ledger

Append-only record of XP grants. Each grant is keyed by
(user, challenge, submission, reason); awarding the same event twice is a
no-op. The user's running total lives on `users.xp_total` and is only
ever changed with a single atomic UPDATE.

Levels are derived from the total against a fixed milestone table and are
never stored. Two tables exist; `XP_LEVEL_CURVE` picks one per deployment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from sqlalchemy import case, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import NotFoundError, ValidationError
from models import EARNED_FOR_REASONS, Challenge, ExperienceGrant, Submission, User

logger = logging.getLogger(__name__)


# 21 levels; the last entry is the max/prestige level.
STANDARD_LEVEL_MILESTONES = (
    0, 50, 200, 500, 1000, 1750, 2850, 4350, 6350, 8950, 12250,
    16350, 21350, 27350, 34550, 43050, 53050, 64550, 77550, 92550, 109550,
)

# Older 17-level curve, kept for deployments that launched on it.
LEGACY_LEVEL_MILESTONES = (
    0, 10, 25, 50, 100, 200, 400, 700, 1100, 1600, 2200, 3000, 4000,
    5200, 6600, 8200, 10000,
)

LEVEL_CURVES: Dict[str, Sequence[int]] = {
    "standard": STANDARD_LEVEL_MILESTONES,
    "legacy": LEGACY_LEVEL_MILESTONES,
}


def active_milestones() -> Sequence[int]:
    return LEVEL_CURVES[settings.XP_LEVEL_CURVE]


def level_for_xp(xp: int, milestones: Optional[Sequence[int]] = None) -> int:
    """
    Level for a total XP value.

    The level is the number of milestones reached. milestones[0] is 0, so
    every non-negative total is at least level 1; the ceiling is
    len(milestones).
    """
    if xp < 0:
        raise ValueError(f"xp must be non-negative, got {xp}")
    table = milestones if milestones is not None else active_milestones()

    level = 0
    for threshold in table:
        if xp >= threshold:
            level += 1
        else:
            break
    return max(level, 1)


def max_level(milestones: Optional[Sequence[int]] = None) -> int:
    table = milestones if milestones is not None else active_milestones()
    return len(table)


def xp_progress(xp: int, milestones: Optional[Sequence[int]] = None) -> float:
    """Percent progress through the current level (100.0 at max level)."""
    table = milestones if milestones is not None else active_milestones()
    level = level_for_xp(xp, table)
    if level >= len(table):
        return 100.0

    floor_xp = table[level - 1]
    next_xp = table[level]
    pct = (xp - floor_xp) / (next_xp - floor_xp) * 100
    return round(min(100.0, max(0.0, pct)), 2)


def xp_needed_for_next_level(xp: int, milestones: Optional[Sequence[int]] = None) -> int:
    """XP still required to reach the next level, or 0 at max level."""
    table = milestones if milestones is not None else active_milestones()
    level = level_for_xp(xp, table)
    if level >= len(table):
        return 0
    return table[level] - xp


def level_summary(xp: int) -> Dict:
    return {
        "xp_total": xp,
        "level": level_for_xp(xp),
        "max_level": max_level(),
        "progress_pct": xp_progress(xp),
        "xp_to_next_level": xp_needed_for_next_level(xp),
        "curve": settings.XP_LEVEL_CURVE,
    }


@dataclass
class AwardResult:
    xp_total: int
    level: int
    awarded: bool

    def to_dict(self) -> Dict:
        return {"xpTotal": self.xp_total, "level": self.level, "awarded": self.awarded}


def _grant_key_filter(user_id: str, challenge_id: int, submission_id: Optional[int], earned_for: str):
    submission_clause = (
        ExperienceGrant.submission_id.is_(None)
        if submission_id is None
        else ExperienceGrant.submission_id == submission_id
    )
    return (
        ExperienceGrant.user_id == user_id,
        ExperienceGrant.challenge_id == challenge_id,
        submission_clause,
        ExperienceGrant.earned_for == earned_for,
    )


def find_grant(
    db: Session,
    user_id: str,
    challenge_id: int,
    submission_id: Optional[int],
    earned_for: str,
) -> Optional[ExperienceGrant]:
    return db.execute(
        select(ExperienceGrant).where(*_grant_key_filter(user_id, challenge_id, submission_id, earned_for))
    ).scalar_one_or_none()


def _current_total(db: Session, user: User) -> int:
    db.expire(user, ["xp_total"])
    return user.xp_total or 0


def award_xp(
    db: Session,
    *,
    user_id: str,
    challenge_id: int,
    submission_id: Optional[int],
    points: int,
    earned_for: str,
) -> AwardResult:
    """
    Award XP for one event, at most once.

    The pre-check answers the common case cheaply; the unique constraint on
    the grant key settles races (a violation means another request already
    awarded this event). The challenge and submission must exist, so the
    only constraint left to trip is that key. Flushes but does not commit.
    """
    if earned_for not in EARNED_FOR_REASONS:
        raise ValidationError(f"Unknown earned_for: {earned_for}", field="earned_for")
    if points <= 0:
        raise ValidationError("points must be positive", field="points")

    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    if db.get(Challenge, challenge_id) is None:
        raise NotFoundError("Challenge", challenge_id)
    if submission_id is not None and db.get(Submission, submission_id) is None:
        raise NotFoundError("Submission", submission_id)

    if find_grant(db, user_id, challenge_id, submission_id, earned_for) is not None:
        xp_total = _current_total(db, user)
        return AwardResult(xp_total=xp_total, level=level_for_xp(xp_total), awarded=False)

    try:
        with db.begin_nested():
            db.add(ExperienceGrant(
                user_id=user_id,
                challenge_id=challenge_id,
                submission_id=submission_id,
                points_earned=points,
                earned_for=earned_for,
            ))
            db.flush()
    except IntegrityError:
        logger.info(
            f"XP already awarded for {earned_for} (user={user_id}, challenge={challenge_id}, submission={submission_id})"
        )
        xp_total = _current_total(db, user)
        return AwardResult(xp_total=xp_total, level=level_for_xp(xp_total), awarded=False)

    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(xp_total=User.xp_total + points)
        .execution_options(synchronize_session=False)
    )
    xp_total = _current_total(db, user)

    logger.info(
        f"Awarded {points} XP to {user_id} for {earned_for}",
        extra={"extra_fields": {
            "user_id": user_id,
            "challenge_id": challenge_id,
            "submission_id": submission_id,
            "points": points,
            "earned_for": earned_for,
            "xp_total": xp_total,
        }},
    )
    return AwardResult(xp_total=xp_total, level=level_for_xp(xp_total), awarded=True)


def revoke_xp(
    db: Session,
    *,
    user_id: str,
    challenge_id: int,
    submission_id: Optional[int],
    earned_for: str,
) -> int:
    """
    Reverse a grant if one exists. Returns the points removed (0 if none).

    The total is decremented by the grant's own points_earned and floored at 0.
    """
    grant = find_grant(db, user_id, challenge_id, submission_id, earned_for)
    if grant is None:
        return 0

    points = grant.points_earned
    result = db.execute(
        delete(ExperienceGrant)
        .where(ExperienceGrant.id == grant.id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # Another request revoked it first.
        return 0
    db.expunge(grant)

    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(xp_total=case(
            (User.xp_total >= points, User.xp_total - points),
            else_=0,
        ))
        .execution_options(synchronize_session=False)
    )
    user = db.get(User, user_id)
    if user is not None:
        db.expire(user, ["xp_total"])

    logger.info(
        f"Revoked {points} XP from {user_id} for {earned_for}",
        extra={"extra_fields": {
            "user_id": user_id,
            "challenge_id": challenge_id,
            "submission_id": submission_id,
            "points": points,
            "earned_for": earned_for,
        }},
    )
    return points


def get_user_xp(db: Session, user_id: str) -> Dict:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return level_summary(user.xp_total or 0)
