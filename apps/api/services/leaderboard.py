"""
XP leaderboard.

Athletes are ranked with their submission and approval counts; coaches
with how many challenges they created and how many submissions to them
were approved.
"""

from __future__ import annotations

from typing import Dict, List

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from core.exceptions import ValidationError
from models import Challenge, Submission, User
from services.experience_ledger import level_for_xp

ATHLETE_SORT_FIELDS = ("xp_total", "current_streak", "challenges_submitted", "coach_approvals", "name")
COACH_SORT_FIELDS = ("xp_total", "current_streak", "challenges_created", "challenges_approved", "name")
MAX_PAGE_SIZE = 100


def _order(column, direction: str):
    return column.asc() if direction == "asc" else column.desc()


def _validate_paging(limit: int, offset: int, sort_order: str) -> str:
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
    if offset < 0:
        raise ValidationError("offset must be non-negative", field="offset")
    direction = (sort_order or "desc").lower()
    if direction not in ("asc", "desc"):
        raise ValidationError("sort_order must be 'asc' or 'desc'", field="sort_order")
    return direction


def _row(user_id, name, role, xp_total, current_streak, **counts) -> Dict:
    xp_total = xp_total or 0
    return {
        "id": user_id,
        "name": name,
        "role": role,
        "xp_total": xp_total,
        "level": level_for_xp(xp_total),
        "current_streak": current_streak or 0,
        **{key: int(value or 0) for key, value in counts.items()},
    }


def athlete_leaderboard(
    db: Session,
    sort_by: str = "xp_total",
    sort_order: str = "desc",
    limit: int = 20,
    offset: int = 0,
) -> List[Dict]:
    direction = _validate_paging(limit, offset, sort_order)
    if sort_by not in ATHLETE_SORT_FIELDS:
        sort_by = "xp_total"

    submitted = func.count(Submission.id).label("challenges_submitted")
    approved = func.count(case((Submission.status == "approved", Submission.id))).label("coach_approvals")
    sort_columns = {
        "xp_total": User.xp_total,
        "current_streak": User.current_streak,
        "challenges_submitted": submitted,
        "coach_approvals": approved,
        "name": User.name,
    }

    rows = db.execute(
        select(User.id, User.name, User.role, User.xp_total, User.current_streak, submitted, approved)
        .join(Submission, Submission.athlete_id == User.id, isouter=True)
        .where(User.role == "athlete")
        .group_by(User.id, User.name, User.role, User.xp_total, User.current_streak)
        .order_by(_order(sort_columns[sort_by], direction), User.id.asc())
        .limit(limit)
        .offset(offset)
    ).all()

    return [
        _row(r.id, r.name, r.role, r.xp_total, r.current_streak,
             challenges_submitted=r.challenges_submitted, coach_approvals=r.coach_approvals)
        for r in rows
    ]


def coach_leaderboard(
    db: Session,
    sort_by: str = "xp_total",
    sort_order: str = "desc",
    limit: int = 20,
    offset: int = 0,
) -> List[Dict]:
    direction = _validate_paging(limit, offset, sort_order)
    if sort_by not in COACH_SORT_FIELDS:
        sort_by = "xp_total"

    created_sq = (
        select(Challenge.coach_id.label("coach_id"), func.count(Challenge.id).label("n"))
        .group_by(Challenge.coach_id)
        .subquery()
    )
    approved_sq = (
        select(Challenge.coach_id.label("coach_id"), func.count(Submission.id).label("n"))
        .join(Submission, Submission.challenge_id == Challenge.id)
        .where(Submission.status == "approved")
        .group_by(Challenge.coach_id)
        .subquery()
    )
    created = func.coalesce(created_sq.c.n, 0).label("challenges_created")
    approved = func.coalesce(approved_sq.c.n, 0).label("challenges_approved")
    sort_columns = {
        "xp_total": User.xp_total,
        "current_streak": User.current_streak,
        "challenges_created": created,
        "challenges_approved": approved,
        "name": User.name,
    }

    rows = db.execute(
        select(User.id, User.name, User.role, User.xp_total, User.current_streak, created, approved)
        .join(created_sq, created_sq.c.coach_id == User.id, isouter=True)
        .join(approved_sq, approved_sq.c.coach_id == User.id, isouter=True)
        .where(User.role == "coach")
        .order_by(_order(sort_columns[sort_by], direction), User.id.asc())
        .limit(limit)
        .offset(offset)
    ).all()

    return [
        _row(r.id, r.name, r.role, r.xp_total, r.current_streak,
             challenges_created=r.challenges_created, challenges_approved=r.challenges_approved)
        for r in rows
    ]


def get_leaderboard(db: Session, role: str = "athlete", **kwargs) -> List[Dict]:
    if role == "coach":
        return coach_leaderboard(db, **kwargs)
    if role == "athlete":
        return athlete_leaderboard(db, **kwargs)
    raise ValidationError("role must be 'athlete' or 'coach'", field="role")
