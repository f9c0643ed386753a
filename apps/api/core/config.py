"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the application.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="findplayer")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)
    # Full URL override (e.g. "sqlite://" for local tests). Wins over POSTGRES_*.
    DATABASE_URL: Optional[str] = Field(default=None)

    # Database Pool Configuration
    DB_POOL_SIZE: int = Field(default=10)
    DB_MAX_OVERFLOW: int = Field(default=5)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # JWT claims decoding - REQUIRED
    # Tokens are issued by the identity provider; we only read their claims.
    SECRET_KEY: str = Field(
        default=...,  # Required - no default
        description="JWT verification key. Must be cryptographically secure (32+ chars). "
                    "Generate with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
    )
    JWT_ALGORITHM: str = Field(default="HS256")

    # API Configuration
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Celery Configuration
    CELERY_BROKER_URL: str = Field(default="redis://redis:6379/0")
    CELERY_RESULT_BACKEND: str = Field(default="redis://redis:6379/0")

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # CORS - comma-separated list of allowed origins for production
    # e.g., "https://findplayer.app,https://www.findplayer.app"
    CORS_ORIGINS: Optional[str] = Field(default=None)

    # Sentry Error Tracking
    SENTRY_DSN: Optional[str] = Field(default=None)
    SENTRY_TRACES_SAMPLE_RATE: float = Field(default=0.1)  # 10% of transactions

    # --- GAMIFICATION ---
    # Which milestone table drives levels: "standard" (21 levels) or "legacy" (17 levels).
    # One curve per deployment; the tables are never mixed.
    XP_LEVEL_CURVE: str = Field(default="standard", pattern="^(standard|legacy)$")
    # XP a coach earns for reviewing a submission (once per submission).
    COACH_REVIEW_XP: int = Field(default=2, ge=1)
    # XP a coach earns for posting a challenge (once per challenge).
    CHALLENGE_POST_XP: int = Field(default=5, ge=1)

    # --- QUOTAS ---
    # Athlete submissions: free / premium per rolling window.
    SUBMISSION_QUOTA_FREE: int = Field(default=1, ge=0)
    SUBMISSION_QUOTA_PREMIUM: int = Field(default=3, ge=0)
    SUBMISSION_QUOTA_WINDOW_MINUTES: int = Field(default=24 * 60, ge=1)  # 1 day
    # Coach challenge creation: free / premium per rolling window.
    CHALLENGE_QUOTA_FREE: int = Field(default=3, ge=0)
    CHALLENGE_QUOTA_PREMIUM: int = Field(default=5, ge=0)
    CHALLENGE_QUOTA_WINDOW_MINUTES: int = Field(default=7 * 24 * 60, ge=1)  # 1 week

    # --- MEMBERSHIP ---
    # Athlete premium lasts this long from premium_started_at. Coaches/scouts never expire.
    ATHLETE_PREMIUM_DURATION_DAYS: int = Field(default=30, ge=1)


# Global settings instance
settings = Settings()
