"""
Notifications API Router

In-app notification feed: athletes hear about reviews, coaches about
new submissions.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import Principal, get_current_principal
from core.database import get_db
from schemas import MarkReadRequest, MarkReadResponse, NotificationListResponse
from services.notifications import list_notifications, mark_notifications_read, unread_count

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
def get_notifications(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return {
        "notifications": list_notifications(db, principal.subject_id),
        "unreadCount": unread_count(db, principal.subject_id),
    }


@router.post("/read", response_model=MarkReadResponse)
def post_mark_read(
    payload: Optional[MarkReadRequest] = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Mark the given notifications read, or all unread ones when no ids are sent."""
    ids = payload.notification_ids if payload else None
    updated = mark_notifications_read(db, principal.subject_id, ids)
    db.commit()
    return {"updated": updated}
