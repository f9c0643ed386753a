from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import Principal, get_current_principal
from core.database import get_db
from schemas import XPSummaryResponse
from services.experience_ledger import get_user_xp

router = APIRouter(prefix="/v1/xp", tags=["xp"])


@router.get("/me", response_model=XPSummaryResponse)
def get_my_xp(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Current XP total and level progress for the caller."""
    summary = get_user_xp(db, principal.subject_id)
    return {
        "xpTotal": summary["xp_total"],
        "level": summary["level"],
        "maxLevel": summary["max_level"],
        "progressPct": summary["progress_pct"],
        "xpToNextLevel": summary["xp_to_next_level"],
        "curve": summary["curve"],
    }
