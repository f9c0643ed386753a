"""
Premium membership expiry.

Athlete premium lasts ATHLETE_PREMIUM_DURATION_DAYS from premium_started_at.
Coach and scout premium does not expire.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from core.config import settings
from models import User

logger = logging.getLogger(__name__)


def expire_premium_memberships(db: Session, now: Optional[datetime] = None) -> List[str]:
    """
    Clear premium for athletes past their paid period. Returns the ids
    that were downgraded. Flushes but does not commit.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=settings.ATHLETE_PREMIUM_DURATION_DAYS)

    expired = (
        User.is_premium_member.is_(True),
        User.role == "athlete",
        User.premium_started_at.is_not(None),
        User.premium_started_at < cutoff,
    )
    user_ids = list(db.execute(select(User.id).where(*expired)).scalars())
    if not user_ids:
        return []

    db.execute(
        update(User)
        .where(User.id.in_(user_ids), *expired)
        .values(is_premium_member=False, premium_started_at=None)
        .execution_options(synchronize_session=False)
    )
    db.expire_all()
    logger.info(
        f"Reset premium membership for {len(user_ids)} athletes",
        extra={"extra_fields": {"user_ids": user_ids}},
    )
    return user_ids
