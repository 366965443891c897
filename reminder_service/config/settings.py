from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    ENVIRONMENT: str = "development"
    NAME: str = "Wellbeing Reminder Service"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api/v1"
    """Pydantic v2 doesn't support parsing List[str] from a plain comma-separated string by default anymore."""
    ALLOWED_HOSTS: Union[str, List[str]] = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"
    # Admin routes refuse every request until this is set
    ADMIN_API_TOKEN: str = ""

    # Database
    DATABASE_URL: str = "sqlite:///./reminders.db"

    # Redis & Celery
    REDIS_PASSWORD: str = ""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    CELERY_TIMEZONE: str = "UTC"

    # Firebase Cloud Messaging
    FIREBASE_CREDENTIALS_PATH: str = "<path-to-your-firebase-service-account-json>"
    FIREBASE_PROJECT_ID: Optional[str] = None

    # Scheduler locking: "redis" (shared by all worker processes) or "local"
    # (only safe when passes run in a single process)
    SCHEDULER_LOCK_BACKEND: str = "redis"
    SCHEDULER_LOCK_TIMEOUT_SECONDS: int = 15 * 60

    # Notification schedule
    NOTIFICATIONS_SCHEDULE_MODE: str = "hourly"
    NOTIFICATIONS_CRON_EXPRESSION: Optional[str] = None
    NOTIFICATIONS_INACTIVITY_CRON: Optional[str] = None
    NOTIFICATIONS_MOOD_CRON: Optional[str] = None
    NOTIFICATIONS_SURVEY_CRON: Optional[str] = None
    NOTIFICATIONS_ARTICLE_CRON: Optional[str] = None
    NOTIFICATIONS_GLOBAL_ACTIVITY_CRON: Optional[str] = None

    # Notification thresholds
    NOTIFICATIONS_INACTIVITY_DAYS: int = 3
    NOTIFICATIONS_MOOD_REMINDER_HOUR: int = 10
    NOTIFICATIONS_SURVEY_REMINDER_DAYS: int = 3
    NOTIFICATIONS_ARTICLE_REMINDER_DAYS: int = 3
    NOTIFICATIONS_RESEND_COOLDOWN_HOURS: int = 24
    NOTIFICATIONS_TIMEZONE: str = "UTC"

    # Fan-out and pagination
    NOTIFICATIONS_BROADCAST_BATCH_SIZE: int = 50
    NOTIFICATIONS_BROADCAST_COOLDOWN_HOURS: Optional[int] = None
    NOTIFICATIONS_USERS_PAGE_SIZE: int = 20
    NOTIFICATIONS_USERS_PAGE_DELAY_MS: int = 0

    # Job retry policy
    NOTIFICATIONS_JOB_ATTEMPTS: int = 3
    NOTIFICATIONS_JOB_BACKOFF_SECONDS: int = 2

    @field_validator("ALLOWED_HOSTS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if not v:
            return []
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
