"""findplayer_challenge_schema

Revision ID: 001_findplayer_challenge
Revises:
Create Date: 2026-10-19

Users, challenges, submissions, the XP ledger and notifications.

Uniqueness backs the workflow guarantees: one submission per
(challenge, athlete) and one XP grant per (user, challenge, submission,
reason), with a partial index so grants without a submission also dedupe.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001_findplayer_challenge"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("role", sa.Text(), nullable=False, server_default="athlete"),
        sa.Column("xp_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_streak_date", sa.Date(), nullable=True),
        sa.Column("is_premium_member", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("premium_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('athlete', 'coach', 'scout')", name="ck_users_role"),
        sa.CheckConstraint("xp_total >= 0", name="ck_users_xp_total_non_negative"),
        sa.CheckConstraint("current_streak >= 0", name="ck_users_current_streak_non_negative"),
    )
    op.create_index("ix_users_role_xp_total", "users", ["role", "xp_total"])

    op.create_table(
        "challenges",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("coach_id", sa.Text(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("xp_value", sa.Integer(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("xp_value > 0", name="ck_challenges_xp_value_positive"),
    )
    op.create_index("ix_challenges_coach_id", "challenges", ["coach_id"])
    op.create_index("ix_challenges_coach_created_at", "challenges", ["coach_id", "created_at"])

    op.create_table(
        "challenge_submissions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("challenge_id", sa.Integer(), sa.ForeignKey("challenges.id"), nullable=False),
        sa.Column("athlete_id", sa.Text(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("athlete_name", sa.Text(), nullable=True),
        sa.Column("video_url", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default="pending"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.Text(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("review_comment", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("challenge_id", "athlete_id", name="uq_submission_challenge_athlete"),
        sa.CheckConstraint("status IN ('pending', 'approved', 'denied')", name="ck_submission_status"),
    )
    op.create_index("ix_submission_athlete_submitted_at", "challenge_submissions", ["athlete_id", "submitted_at"])
    op.create_index("ix_submission_challenge_status", "challenge_submissions", ["challenge_id", "status"])

    op.create_table(
        "user_experience_points",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Text(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("challenge_id", sa.Integer(), sa.ForeignKey("challenges.id"), nullable=False),
        sa.Column("submission_id", sa.Integer(), sa.ForeignKey("challenge_submissions.id"), nullable=True),
        sa.Column("points_earned", sa.Integer(), nullable=False),
        sa.Column("earned_for", sa.Text(), nullable=False),
        sa.Column("earned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "user_id", "challenge_id", "submission_id", "earned_for",
            name="uq_xp_grant_event",
        ),
        sa.CheckConstraint("points_earned > 0", name="ck_xp_grant_points_positive"),
        sa.CheckConstraint(
            "earned_for IN ('challenge_post', 'challenge_submission', 'challenge_review')",
            name="ck_xp_grant_earned_for",
        ),
    )
    op.create_index(
        "uq_xp_grant_event_no_submission",
        "user_experience_points",
        ["user_id", "challenge_id", "earned_for"],
        unique=True,
        postgresql_where=sa.text("submission_id IS NULL"),
        sqlite_where=sa.text("submission_id IS NULL"),
    )
    op.create_index("ix_xp_grant_user_id", "user_experience_points", ["user_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("from_user_id", sa.Text(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("to_user_id", sa.Text(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("challenge_id", sa.Integer(), sa.ForeignKey("challenges.id"), nullable=True),
        sa.Column("submission_id", sa.Integer(), sa.ForeignKey("challenge_submissions.id"), nullable=True),
        sa.Column("review_result", sa.Text(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_to_user_created_at", "notifications", ["to_user_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_notifications_to_user_created_at", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_xp_grant_user_id", table_name="user_experience_points")
    op.drop_index("uq_xp_grant_event_no_submission", table_name="user_experience_points")
    op.drop_table("user_experience_points")
    op.drop_index("ix_submission_challenge_status", table_name="challenge_submissions")
    op.drop_index("ix_submission_athlete_submitted_at", table_name="challenge_submissions")
    op.drop_table("challenge_submissions")
    op.drop_index("ix_challenges_coach_created_at", table_name="challenges")
    op.drop_index("ix_challenges_coach_id", table_name="challenges")
    op.drop_table("challenges")
    op.drop_index("ix_users_role_xp_total", table_name="users")
    op.drop_table("users")
