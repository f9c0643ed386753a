"""
Review Workflow

A coach approves or denies a submission on one of their own challenges.

The status transition is the primary write and is committed first, with
an optimistic version check so two concurrent reviews cannot both win.
Everything after it (XP revoke/award, streak, athlete notification) is a
follow-up step: failures are logged and the recorded review stands.
Re-reviewing is allowed; a denial after an approval reverses the
athlete's grant.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from core.auth import Principal
from core.config import settings
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models import Challenge, Submission
from services.experience_ledger import award_xp, revoke_xp
from services.notifications import announce_notification, record_notification
from services.side_effects import run_side_effect
from services.streak_tracker import bump_streak

logger = logging.getLogger(__name__)

REVIEW_ACTIONS = {"approve": "approved", "deny": "denied"}


def _load_owned_submission(db: Session, submission_id: int, coach_id: str):
    """
    Submission joined to its challenge, only if the challenge is coach_id's.

    Non-owners get NotFound so existence is not leaked.
    """
    row = db.execute(
        select(Submission, Challenge)
        .join(Challenge, Challenge.id == Submission.challenge_id)
        .where(Submission.id == submission_id, Challenge.coach_id == coach_id)
    ).one_or_none()
    if row is None:
        raise NotFoundError("Submission", submission_id)
    return row


def _has_other_approval_on(db: Session, athlete_id: str, submission_id: int, now: datetime) -> bool:
    day_start = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
    day_end = day_start + timedelta(days=1)
    other = db.execute(
        select(Submission.id).where(
            Submission.athlete_id == athlete_id,
            Submission.status == "approved",
            Submission.reviewed_at >= day_start,
            Submission.reviewed_at < day_end,
            Submission.id != submission_id,
        ).limit(1)
    ).scalar_one_or_none()
    return other is not None


def review_submission(
    db: Session,
    principal: Principal,
    submission_id: int,
    action: str,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Submission:
    """Approve or deny a submission and run the follow-up steps."""
    if not principal.has_role("coach"):
        raise ForbiddenError("Forbidden: Only coaches can review submissions")

    coach_id = principal.subject_id
    submission, challenge = _load_owned_submission(db, submission_id, coach_id)

    if action not in REVIEW_ACTIONS:
        raise ValidationError("Action must be 'approve' or 'deny'", field="action")
    comment = (comment or "").strip() or None
    if action == "deny" and comment is None:
        raise ValidationError("Comment is required for denial", field="comment")

    now = now or datetime.now(timezone.utc)
    new_status = REVIEW_ACTIONS[action]
    athlete_id = submission.athlete_id
    challenge_id = challenge.id
    xp_value = challenge.xp_value
    seen_version = submission.version

    result = db.execute(
        update(Submission)
        .where(Submission.id == submission_id, Submission.version == seen_version)
        .values(
            status=new_status,
            reviewed_at=now,
            reviewed_by=coach_id,
            review_comment=comment,
            version=Submission.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise ConflictError("Submission was reviewed concurrently; reload and try again")
    db.commit()

    logger.info(
        f"Submission {submission_id} {new_status} by coach {coach_id}",
        extra={"extra_fields": {
            "submission_id": submission_id,
            "challenge_id": challenge_id,
            "athlete_id": athlete_id,
            "coach_id": coach_id,
            "status": new_status,
        }},
    )

    context = {"submission_id": submission_id, "challenge_id": challenge_id, "athlete_id": athlete_id}

    if action == "deny":
        run_side_effect(
            db,
            "revoke_athlete_xp",
            lambda: revoke_xp(
                db,
                user_id=athlete_id,
                challenge_id=challenge_id,
                submission_id=submission_id,
                earned_for="challenge_submission",
            ),
            context=context,
        )

    run_side_effect(
        db,
        "award_coach_review_xp",
        lambda: award_xp(
            db,
            user_id=coach_id,
            challenge_id=challenge_id,
            submission_id=submission_id,
            points=settings.COACH_REVIEW_XP,
            earned_for="challenge_review",
        ),
        context=context,
    )

    if action == "approve":
        run_side_effect(
            db,
            "award_athlete_submission_xp",
            lambda: award_xp(
                db,
                user_id=athlete_id,
                challenge_id=challenge_id,
                submission_id=submission_id,
                points=xp_value,
                earned_for="challenge_submission",
            ),
            context=context,
        )

        def _bump_if_first_approval_today():
            if _has_other_approval_on(db, athlete_id, submission_id, now):
                return None
            return bump_streak(db, athlete_id, today=now.date())

        run_side_effect(db, "bump_athlete_streak", _bump_if_first_approval_today, context=context)

    notification = run_side_effect(
        db,
        "notify_athlete_of_review",
        lambda: record_notification(
            db,
            type="challenge_review",
            from_user_id=coach_id,
            to_user_id=athlete_id,
            challenge_id=challenge_id,
            submission_id=submission_id,
            review_result=action,
        ),
        context=context,
    )
    announce_notification(notification)

    db.refresh(submission)
    return submission
