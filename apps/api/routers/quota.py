"""
Quota API Router

Lets clients show how many submissions or challenge posts remain in the
current window before the user hits the limit.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import Principal, get_current_principal
from core.database import get_db
from core.exceptions import ForbiddenError
from schemas import QuotaResponse
from services.quota_guard import ACTION_CHALLENGE_CREATION, ACTION_SUBMISSION, check_quota

router = APIRouter(prefix="/v1/quota", tags=["quota"])

# Which role each quota applies to
ACTION_ROLES = {
    ACTION_SUBMISSION: "athlete",
    ACTION_CHALLENGE_CREATION: "coach",
}


@router.get("/{action}", response_model=QuotaResponse)
def get_quota(
    action: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    required_role = ACTION_ROLES.get(action)
    if required_role is not None and not principal.has_role(required_role):
        raise ForbiddenError(f"Forbidden: {action} quota applies to {required_role}s only")
    # Unknown actions fall through to a 400 from the guard
    return check_quota(db, principal.subject_id, action).to_dict()
