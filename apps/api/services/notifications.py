"""
Notification records for challenge activity.

Rows in `notifications` are the sink. Delivery channels subscribe to the
`notification.created` event, which is announced only once the row has
been committed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, joinedload

from core.events import emit
from core.exceptions import ValidationError
from models import NOTIFICATION_TYPES, Notification

NOTIFICATION_PAGE_SIZE = 50


def record_notification(
    db: Session,
    *,
    type: str,
    from_user_id: str,
    to_user_id: str,
    challenge_id: Optional[int] = None,
    submission_id: Optional[int] = None,
    review_result: Optional[str] = None,
) -> Notification:
    """Insert a notification row. Flushes but does not commit."""
    if type not in NOTIFICATION_TYPES:
        raise ValidationError(f"Unknown notification type: {type}", field="type")

    notification = Notification(
        type=type,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        challenge_id=challenge_id,
        submission_id=submission_id,
        review_result=review_result,
        is_read=False,
    )
    db.add(notification)
    db.flush()
    return notification


def announce_notification(notification: Optional[Notification]) -> None:
    """Tell subscribers about a committed notification. None is a no-op."""
    if notification is None:
        return
    emit(
        "notification.created",
        notification_id=notification.id,
        type=notification.type,
        from_user_id=notification.from_user_id,
        to_user_id=notification.to_user_id,
        challenge_id=notification.challenge_id,
        submission_id=notification.submission_id,
        review_result=notification.review_result,
    )


def serialize_notification(n: Notification) -> Dict:
    from_user = n.from_user
    return {
        "id": n.id,
        "type": n.type,
        "fromUser": {
            "id": n.from_user_id,
            "name": from_user.name if from_user else None,
            "role": from_user.role if from_user else None,
        },
        "challengeId": n.challenge_id,
        "challengeTitle": n.challenge.title if n.challenge else None,
        "submissionId": n.submission_id,
        "reviewResult": n.review_result,
        "isRead": n.is_read,
        "createdAt": n.created_at,
    }


def list_notifications(db: Session, user_id: str, limit: int = NOTIFICATION_PAGE_SIZE) -> List[Dict]:
    """Latest notifications addressed to `user_id`, newest first."""
    rows = db.execute(
        select(Notification)
        .options(joinedload(Notification.from_user), joinedload(Notification.challenge))
        .where(Notification.to_user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    ).scalars().all()
    return [serialize_notification(n) for n in rows]


def mark_notifications_read(
    db: Session,
    user_id: str,
    notification_ids: Optional[Sequence[int]] = None,
) -> int:
    """
    Mark notifications read for their recipient only.

    With ids: just those (ignoring ids addressed to someone else). An empty
    list marks nothing. With None: every unread notification of the user.
    Returns rows updated.
    """
    if notification_ids is not None and len(notification_ids) == 0:
        return 0

    stmt = update(Notification).where(Notification.to_user_id == user_id)
    if notification_ids is not None:
        stmt = stmt.where(Notification.id.in_(list(notification_ids)))
    else:
        stmt = stmt.where(Notification.is_read.is_(False))

    result = db.execute(
        stmt.values(is_read=True, read_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def unread_count(db: Session, user_id: str) -> int:
    return int(db.execute(
        select(func.count(Notification.id)).where(
            Notification.to_user_id == user_id,
            Notification.is_read.is_(False),
        )
    ).scalar() or 0)
