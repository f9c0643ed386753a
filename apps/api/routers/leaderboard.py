from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.auth import Principal, get_current_principal
from core.database import get_db
from schemas import LeaderboardEntry
from services.leaderboard import get_leaderboard

router = APIRouter(prefix="/v1/leaderboard", tags=["leaderboard"])


@router.get("", response_model=List[LeaderboardEntry])
def get_leaderboard_page(
    role: str = Query("athlete"),
    sort_by: str = Query("xp_total"),
    sort_order: str = Query("desc"),
    limit: int = Query(20),
    offset: int = Query(0),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Ranked athletes or coaches. Unknown sort fields fall back to XP."""
    rows = get_leaderboard(
        db,
        role=role,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    return [{"rank": offset + i + 1, **row} for i, row in enumerate(rows)]
