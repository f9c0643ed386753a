"""
Challenges API Router

Coaches post challenges; any signed-in user can browse them.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import Principal, get_current_principal, require_role
from core.database import get_db
from schemas import ChallengeCreate, ChallengeResponse
from services.challenges import (
    create_challenge,
    list_challenges,
    list_coach_challenges,
    serialize_challenge,
)

router = APIRouter(prefix="/v1/challenges", tags=["challenges"])


@router.post("", response_model=ChallengeResponse, status_code=201)
def post_challenge(
    payload: ChallengeCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """
    Create a challenge owned by the calling coach.

    - 403 for non-coaches
    - 400 for an empty title or non-positive xp_value
    - 429 when the weekly creation quota is used up
    """
    challenge = create_challenge(
        db,
        principal,
        title=payload.title,
        description=payload.description,
        xp_value=payload.xp_value,
        image_url=payload.image_url,
    )
    return serialize_challenge(challenge, principal.name)


@router.get("", response_model=List[ChallengeResponse])
def get_challenges(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return list_challenges(db)


@router.get("/mine", response_model=List[ChallengeResponse])
def get_my_challenges(
    principal: Principal = Depends(require_role(["coach"])),
    db: Session = Depends(get_db),
):
    return list_coach_challenges(db, principal.subject_id)


@router.get("/coach/{coach_id}", response_model=List[ChallengeResponse])
def get_coach_challenges(
    coach_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return list_coach_challenges(db, coach_id)
