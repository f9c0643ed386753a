from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Date, DateTime, ForeignKey, Text, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from core.database import Base
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


SUBMISSION_STATUSES = ("pending", "approved", "denied")
EARNED_FOR_REASONS = ("challenge_post", "challenge_submission", "challenge_review")
NOTIFICATION_TYPES = ("challenge_submission", "challenge_review")


class User(Base):
    __tablename__ = "users"

    # Subject id from the identity provider (opaque, stable).
    id = Column(Text, primary_key=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    name = Column(Text, nullable=True)
    role = Column(Text, default="athlete", nullable=False)  # 'athlete', 'coach', 'scout'

    # --- GAMIFICATION ---
    # Mutated only through atomic UPDATEs (services.experience_ledger).
    xp_total = Column(Integer, default=0, nullable=False)
    # Mutated only through compare-and-swap UPDATEs (services.streak_tracker).
    current_streak = Column(Integer, default=0, nullable=False)
    last_streak_date = Column(Date, nullable=True)

    # --- MEMBERSHIP ---
    is_premium_member = Column(Boolean, default=False, nullable=False)
    premium_started_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("role IN ('athlete', 'coach', 'scout')", name="ck_users_role"),
        CheckConstraint("xp_total >= 0", name="ck_users_xp_total_non_negative"),
        CheckConstraint("current_streak >= 0", name="ck_users_current_streak_non_negative"),
        Index("ix_users_role_xp_total", "role", "xp_total"),
    )


class Challenge(Base):
    __tablename__ = "challenges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    coach_id = Column(Text, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    xp_value = Column(Integer, nullable=False)
    image_url = Column(Text, nullable=True)  # uploaded elsewhere; stored as-is
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    coach = relationship("User")
    submissions = relationship("Submission", back_populates="challenge")

    __table_args__ = (
        CheckConstraint("xp_value > 0", name="ck_challenges_xp_value_positive"),
        Index("ix_challenges_coach_created_at", "coach_id", "created_at"),
    )


class Submission(Base):
    __tablename__ = "challenge_submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id"), nullable=False)
    athlete_id = Column(Text, ForeignKey("users.id"), nullable=False)
    athlete_name = Column(Text, nullable=True)
    video_url = Column(Text, nullable=False)
    status = Column(Text, default="pending", nullable=False)  # 'pending', 'approved', 'denied'
    submitted_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(Text, ForeignKey("users.id"), nullable=True)
    review_comment = Column(Text, nullable=True)
    # Optimistic-lock counter: every review is `UPDATE ... WHERE version = :seen`.
    version = Column(Integer, default=0, nullable=False)

    challenge = relationship("Challenge", back_populates="submissions")

    __table_args__ = (
        UniqueConstraint("challenge_id", "athlete_id", name="uq_submission_challenge_athlete"),
        CheckConstraint("status IN ('pending', 'approved', 'denied')", name="ck_submission_status"),
        Index("ix_submission_athlete_submitted_at", "athlete_id", "submitted_at"),
        Index("ix_submission_challenge_status", "challenge_id", "status"),
    )


class ExperienceGrant(Base):
    """Append-only XP ledger. One row per (user, challenge, submission, reason)."""
    __tablename__ = "user_experience_points"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, ForeignKey("users.id"), nullable=False)
    challenge_id = Column(Integer, ForeignKey("challenges.id"), nullable=False)
    submission_id = Column(Integer, ForeignKey("challenge_submissions.id"), nullable=True)
    points_earned = Column(Integer, nullable=False)
    earned_for = Column(Text, nullable=False)
    earned_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "user_id", "challenge_id", "submission_id", "earned_for",
            name="uq_xp_grant_event",
        ),
        # NULLs are distinct in the constraint above; grants without a
        # submission (challenge_post) need their own key.
        Index(
            "uq_xp_grant_event_no_submission",
            "user_id", "challenge_id", "earned_for",
            unique=True,
            postgresql_where=submission_id.is_(None),
            sqlite_where=submission_id.is_(None),
        ),
        CheckConstraint("points_earned > 0", name="ck_xp_grant_points_positive"),
        CheckConstraint(
            "earned_for IN ('challenge_post', 'challenge_submission', 'challenge_review')",
            name="ck_xp_grant_earned_for",
        ),
        Index("ix_xp_grant_user_id", "user_id"),
    )


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(Text, nullable=False)  # 'challenge_submission', 'challenge_review'
    from_user_id = Column(Text, ForeignKey("users.id"), nullable=False)
    to_user_id = Column(Text, ForeignKey("users.id"), nullable=False)
    challenge_id = Column(Integer, ForeignKey("challenges.id"), nullable=True)
    submission_id = Column(Integer, ForeignKey("challenge_submissions.id"), nullable=True)
    review_result = Column(Text, nullable=True)  # 'approve' | 'deny' for reviews
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    from_user = relationship("User", foreign_keys=[from_user_id])
    challenge = relationship("Challenge")

    __table_args__ = (
        Index("ix_notifications_to_user_created_at", "to_user_id", "created_at"),
    )
