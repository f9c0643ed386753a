"""
Challenge Submissions API Router

Athletes submit a video per challenge; coaches review submissions on
their own challenges.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import Principal, get_current_principal
from core.database import get_db
from schemas import ReviewRequest, SubmissionCreate, SubmissionResponse
from services.challenge_submission import (
    get_submission_status,
    list_pending_submissions,
    serialize_submission,
    submit_challenge,
)
from services.submission_review import review_submission

router = APIRouter(prefix="/v1", tags=["submissions"])


@router.post(
    "/challenges/{challenge_id}/submissions",
    response_model=SubmissionResponse,
    status_code=201,
)
def post_submission(
    challenge_id: int,
    payload: SubmissionCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """
    Submit a video for a challenge.

    Only athletes may submit, once per challenge, within their daily
    quota. A duplicate returns 409 with the existing submission.
    """
    submission = submit_challenge(db, principal, challenge_id, payload.video_url)
    return serialize_submission(submission)


@router.get("/challenges/{challenge_id}/submission", response_model=SubmissionResponse)
def get_my_submission(
    challenge_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return serialize_submission(get_submission_status(db, principal, challenge_id))


@router.get("/submissions/pending", response_model=List[SubmissionResponse])
def get_pending_submissions(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return list_pending_submissions(db, principal)


@router.post("/submissions/{submission_id}/review", response_model=SubmissionResponse)
def post_review(
    submission_id: int,
    payload: ReviewRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """
    Approve or deny a submission.

    Denials require a comment. Submissions on another coach's challenge
    are reported as not found.
    """
    submission = review_submission(
        db,
        principal,
        submission_id,
        payload.action,
        comment=payload.comment,
    )
    return serialize_submission(submission)
