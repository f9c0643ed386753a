"""
Best-effort follow-up steps after a committed primary write.

Once a submission is inserted or a review recorded, the XP, streak and
notification steps that follow must not undo it. Each step runs in its own
transaction: success commits, failure rolls back only that step and is
logged. Callers always see the primary write succeed.
"""

import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def run_side_effect(
    db: Session,
    step: str,
    fn: Callable[[], Any],
    context: Optional[Dict[str, Any]] = None,
) -> Any:
    """
    Run `fn`, commit its writes, and return its result.

    On any exception the step's writes are rolled back, the failure is
    logged with `context`, and None is returned.
    """
    try:
        result = fn()
        db.commit()
        return result
    except Exception as e:
        db.rollback()
        logger.error(
            f"Side effect '{step}' failed: {e}",
            exc_info=True,
            extra={"extra_fields": {"step": step, **(context or {})}},
        )
        return None
