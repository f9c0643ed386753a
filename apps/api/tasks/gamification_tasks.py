"""
Scheduled Gamification Tasks

Daily maintenance of streaks and premium memberships.
Runs via Celery Beat scheduler.
"""

from typing import Dict
from celery import Task
from sqlalchemy.orm import Session
from core.database import get_db_sync
from tasks import celery_app
from services.membership import expire_premium_memberships
from services.streak_tracker import reset_stale_streaks
import logging

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.reset_stale_streaks", bind=True)
def reset_stale_streaks_task(self: Task) -> Dict:
    """Zero the streak of every user who skipped a day."""
    db: Session = get_db_sync()

    try:
        user_ids = reset_stale_streaks(db)
        db.commit()
        logger.info(f"Streak reset complete: {len(user_ids)} users")
        return {"status": "success", "reset_count": len(user_ids)}
    except Exception as e:
        db.rollback()
        logger.error(f"Streak reset failed: {e}", exc_info=True)
        raise
    finally:
        db.close()


@celery_app.task(name="tasks.expire_premium_memberships", bind=True)
def expire_premium_memberships_task(self: Task) -> Dict:
    """Downgrade athletes whose premium period has run out."""
    db: Session = get_db_sync()

    try:
        user_ids = expire_premium_memberships(db)
        db.commit()
        return {"status": "success", "expired_count": len(user_ids)}
    except Exception as e:
        db.rollback()
        logger.error(f"Premium expiry failed: {e}", exc_info=True)
        raise
    finally:
        db.close()
