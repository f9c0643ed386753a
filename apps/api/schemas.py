from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List


class ChallengeCreate(BaseModel):
    title: str
    description: Optional[str] = None
    xp_value: int
    image_url: Optional[str] = None  # Opaque storage URL, uploaded by the client


class ChallengeResponse(BaseModel):
    id: int
    coach_id: str
    coach_name: Optional[str] = None
    title: str
    description: Optional[str] = None
    xp_value: int
    image_url: Optional[str] = None
    created_at: datetime
    submission_count: Optional[int] = None  # Only on a coach's own listing

    model_config = ConfigDict(from_attributes=True)


class SubmissionCreate(BaseModel):
    video_url: Optional[str] = None


class SubmissionResponse(BaseModel):
    id: int
    challenge_id: int
    athlete_id: str
    athlete_name: Optional[str] = None
    video_url: str
    status: str  # pending, approved, denied
    submitted_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    review_comment: Optional[str] = None
    challenge_title: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ReviewRequest(BaseModel):
    """Review decision. Validated by the workflow so bad actions get a 400."""
    action: Optional[str] = None  # approve | deny
    comment: Optional[str] = None


class QuotaResponse(BaseModel):
    action: str
    current: int
    max: int
    remaining: int
    isPremium: bool
    period: str
    windowMinutes: int


class XPSummaryResponse(BaseModel):
    xpTotal: int
    level: int
    maxLevel: int
    progressPct: float
    xpToNextLevel: int
    curve: str


class NotificationSender(BaseModel):
    id: str
    name: Optional[str] = None
    role: Optional[str] = None


class NotificationResponse(BaseModel):
    id: int
    type: str
    fromUser: NotificationSender
    challengeId: Optional[int] = None
    challengeTitle: Optional[str] = None
    submissionId: Optional[int] = None
    reviewResult: Optional[str] = None
    isRead: bool
    createdAt: datetime


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unreadCount: int


class MarkReadRequest(BaseModel):
    notification_ids: Optional[List[int]] = Field(default=None, alias="notificationIds")

    model_config = ConfigDict(populate_by_name=True)


class MarkReadResponse(BaseModel):
    updated: int


class LeaderboardEntry(BaseModel):
    rank: int
    id: str
    name: Optional[str] = None
    role: str
    xp_total: int
    level: int
    current_streak: int
    challenges_submitted: Optional[int] = None
    coach_approvals: Optional[int] = None
    challenges_created: Optional[int] = None
    challenges_approved: Optional[int] = None
