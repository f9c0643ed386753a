"""
Submission Workflow

An athlete submits one video per challenge:

    (none) -> pending -> approved | denied

Role, input, quota and duplicate checks happen before any write. Once the
submission row is committed, the coach notification and the streak bump
are follow-up steps: if they fail the submission still stands.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.auth import Principal
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models import Challenge, Submission, User
from services.notifications import announce_notification, record_notification
from services.quota_guard import ACTION_SUBMISSION, enforce_quota
from services.side_effects import run_side_effect
from services.streak_tracker import bump_streak

logger = logging.getLogger(__name__)


def serialize_submission(submission: Submission) -> Dict:
    return {
        "id": submission.id,
        "challenge_id": submission.challenge_id,
        "athlete_id": submission.athlete_id,
        "athlete_name": submission.athlete_name,
        "video_url": submission.video_url,
        "status": submission.status,
        "submitted_at": submission.submitted_at,
        "reviewed_at": submission.reviewed_at,
        "reviewed_by": submission.reviewed_by,
        "review_comment": submission.review_comment,
    }


def find_submission(db: Session, challenge_id: int, athlete_id: str) -> Optional[Submission]:
    return db.execute(
        select(Submission).where(
            Submission.challenge_id == challenge_id,
            Submission.athlete_id == athlete_id,
        )
    ).scalar_one_or_none()


def _duplicate(existing: Submission) -> ConflictError:
    return ConflictError({
        "message": "You have already submitted a video for this challenge",
        "submission": serialize_submission(existing),
    })


def submit_challenge(
    db: Session,
    principal: Principal,
    challenge_id: int,
    video_url: str,
    today: Optional[date] = None,
) -> Submission:
    """Create the athlete's pending submission for a challenge."""
    if not principal.has_role("athlete"):
        raise ForbiddenError("Forbidden: Only athletes can submit challenges")

    video_url = (video_url or "").strip()
    if not video_url:
        raise ValidationError("video_url is required", field="video_url")

    athlete_id = principal.subject_id
    challenge = db.get(Challenge, challenge_id)
    if challenge is None:
        raise NotFoundError("Challenge", challenge_id)

    quota = enforce_quota(db, athlete_id, ACTION_SUBMISSION)
    logger.info(
        f"Athlete {athlete_id} has submitted {quota.current}/{quota.max} challenges in the last {quota.period}",
        extra={"extra_fields": {"athlete_id": athlete_id, "is_premium": quota.is_premium}},
    )

    existing = find_submission(db, challenge_id, athlete_id)
    if existing is not None:
        raise _duplicate(existing)

    athlete_name = principal.name
    if not athlete_name:
        athlete_name = db.execute(select(User.name).where(User.id == athlete_id)).scalar_one_or_none()

    submission = Submission(
        challenge_id=challenge_id,
        athlete_id=athlete_id,
        athlete_name=athlete_name or "Unknown",
        video_url=video_url,
        status="pending",
    )
    try:
        with db.begin_nested():
            db.add(submission)
            db.flush()
    except IntegrityError:
        # Lost a race with a concurrent submit for the same pair.
        existing = find_submission(db, challenge_id, athlete_id)
        if existing is None:
            raise
        raise _duplicate(existing)

    db.commit()
    db.refresh(submission)

    logger.info(
        f"Submission {submission.id} received for challenge {challenge_id}",
        extra={"extra_fields": {
            "submission_id": submission.id,
            "challenge_id": challenge_id,
            "athlete_id": athlete_id,
        }},
    )

    context = {"submission_id": submission.id, "challenge_id": challenge_id, "athlete_id": athlete_id}
    coach_id = challenge.coach_id
    notification = run_side_effect(
        db,
        "notify_coach_of_submission",
        lambda: record_notification(
            db,
            type="challenge_submission",
            from_user_id=athlete_id,
            to_user_id=coach_id,
            challenge_id=challenge_id,
            submission_id=submission.id,
        ),
        context=context,
    )
    announce_notification(notification)
    run_side_effect(
        db,
        "bump_athlete_streak",
        lambda: bump_streak(db, athlete_id, today=today),
        context=context,
    )

    return submission


def get_submission_status(db: Session, principal: Principal, challenge_id: int) -> Submission:
    """The caller's own submission for a challenge."""
    submission = find_submission(db, challenge_id, principal.subject_id)
    if submission is None:
        raise NotFoundError("Submission for challenge", challenge_id)
    return submission


def list_pending_submissions(db: Session, principal: Principal) -> List[Dict]:
    """Pending submissions on the calling coach's challenges, newest first."""
    if not principal.has_role("coach"):
        raise ForbiddenError("Forbidden: Only coaches can list submissions for review")

    rows = db.execute(
        select(Submission, Challenge.title)
        .join(Challenge, Challenge.id == Submission.challenge_id)
        .where(Challenge.coach_id == principal.subject_id, Submission.status == "pending")
        .order_by(Submission.submitted_at.desc(), Submission.id.desc())
    ).all()

    result = []
    for submission, title in rows:
        item = serialize_submission(submission)
        item["challenge_title"] = title
        result.append(item)
    return result
