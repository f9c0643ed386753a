"""
Challenge authoring and browsing.

Coaches post challenges (rate limited by the challenge_creation quota and
rewarded once per challenge); everyone can browse them.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from core.auth import Principal
from core.config import settings
from core.exceptions import ForbiddenError, ValidationError
from models import Challenge, Submission, User
from services.experience_ledger import award_xp
from services.quota_guard import ACTION_CHALLENGE_CREATION, enforce_quota
from services.side_effects import run_side_effect

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200


def serialize_challenge(challenge: Challenge, coach_name: Optional[str] = None) -> Dict:
    return {
        "id": challenge.id,
        "coach_id": challenge.coach_id,
        "coach_name": coach_name,
        "title": challenge.title,
        "description": challenge.description,
        "xp_value": challenge.xp_value,
        "image_url": challenge.image_url,
        "created_at": challenge.created_at,
    }


def create_challenge(
    db: Session,
    principal: Principal,
    *,
    title: str,
    description: Optional[str],
    xp_value: int,
    image_url: Optional[str] = None,
) -> Challenge:
    """
    Create a challenge owned by the calling coach.

    Validation and quota run before any write. The posting reward is a
    follow-up step and never blocks the challenge itself.
    """
    if not principal.has_role("coach"):
        raise ForbiddenError("Forbidden: Only coaches can create challenges")

    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required", field="title")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must be at most {MAX_TITLE_LENGTH} characters", field="title")
    if xp_value is None or xp_value <= 0:
        raise ValidationError("xp_value must be a positive integer", field="xp_value")

    coach_id = principal.subject_id
    enforce_quota(db, coach_id, ACTION_CHALLENGE_CREATION)

    challenge = Challenge(
        coach_id=coach_id,
        title=title,
        description=description,
        xp_value=xp_value,
        image_url=image_url,
    )
    db.add(challenge)
    db.commit()
    db.refresh(challenge)

    logger.info(
        f"Challenge {challenge.id} created by coach {coach_id}",
        extra={"extra_fields": {"challenge_id": challenge.id, "coach_id": coach_id, "xp_value": xp_value}},
    )

    run_side_effect(
        db,
        "award_challenge_post_xp",
        lambda: award_xp(
            db,
            user_id=coach_id,
            challenge_id=challenge.id,
            submission_id=None,
            points=settings.CHALLENGE_POST_XP,
            earned_for="challenge_post",
        ),
        context={"challenge_id": challenge.id, "coach_id": coach_id},
    )
    return challenge


def list_challenges(db: Session) -> List[Dict]:
    """All challenges, newest first, with the coach's display name."""
    rows = db.execute(
        select(Challenge, User.name)
        .join(User, User.id == Challenge.coach_id, isouter=True)
        .order_by(Challenge.created_at.desc(), Challenge.id.desc())
    ).all()
    return [serialize_challenge(challenge, coach_name) for challenge, coach_name in rows]


def list_coach_challenges(db: Session, coach_id: str) -> List[Dict]:
    """A coach's challenges with how many submissions each has received."""
    submission_count = func.count(Submission.id).label("submission_count")
    rows = db.execute(
        select(Challenge, User.name, submission_count)
        .join(User, User.id == Challenge.coach_id, isouter=True)
        .join(Submission, Submission.challenge_id == Challenge.id, isouter=True)
        .where(Challenge.coach_id == coach_id)
        .group_by(Challenge.id, User.name)
        .order_by(Challenge.created_at.desc(), Challenge.id.desc())
    ).all()

    result = []
    for challenge, coach_name, count in rows:
        item = serialize_challenge(challenge, coach_name)
        item["submission_count"] = int(count or 0)
        result.append(item)
    return result
