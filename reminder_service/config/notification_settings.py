from typing import Optional

from celery.schedules import crontab
from pydantic import BaseModel

from .settings import Settings, settings as app_settings

HOURLY_CRON = "0 * * * *"
HALF_DAY_CRON = "0 */12 * * *"


class NotificationCronConfig(BaseModel):
    inactivity: str
    mood: str
    surveys: str
    articles: str
    global_activity: str


class PaginationSettings(BaseModel):
    page_size: int
    delay_ms: int


class NotificationSettings(BaseModel):
    cron_expressions: NotificationCronConfig
    inactivity_threshold_days: int
    mood_reminder_hour: int
    survey_reminder_days: int
    article_reminder_days: int
    resend_cooldown_hours: int
    pagination: PaginationSettings
    broadcast_batch_size: int
    broadcast_cooldown_hours: Optional[int] = None
    job_attempts: int = 3
    job_backoff_seconds: int = 2
    timezone: str = "UTC"


class NotificationSettingsProvider:
    """Builds a notification settings snapshot from environment settings on every call."""

    def __init__(self, source: Optional[Settings] = None):
        self.source = source or app_settings

    def get_notification_settings(self) -> NotificationSettings:
        s = self.source
        return NotificationSettings(
            cron_expressions=NotificationCronConfig(
                inactivity=self._cron(s.NOTIFICATIONS_INACTIVITY_CRON),
                mood=self._cron(s.NOTIFICATIONS_MOOD_CRON),
                surveys=self._cron(s.NOTIFICATIONS_SURVEY_CRON),
                articles=self._cron(s.NOTIFICATIONS_ARTICLE_CRON),
                global_activity=self._cron(s.NOTIFICATIONS_GLOBAL_ACTIVITY_CRON),
            ),
            inactivity_threshold_days=s.NOTIFICATIONS_INACTIVITY_DAYS,
            mood_reminder_hour=s.NOTIFICATIONS_MOOD_REMINDER_HOUR,
            survey_reminder_days=s.NOTIFICATIONS_SURVEY_REMINDER_DAYS,
            article_reminder_days=s.NOTIFICATIONS_ARTICLE_REMINDER_DAYS,
            resend_cooldown_hours=s.NOTIFICATIONS_RESEND_COOLDOWN_HOURS,
            pagination=PaginationSettings(
                page_size=max(1, s.NOTIFICATIONS_USERS_PAGE_SIZE or 1),
                delay_ms=max(0, s.NOTIFICATIONS_USERS_PAGE_DELAY_MS or 0),
            ),
            broadcast_batch_size=max(1, s.NOTIFICATIONS_BROADCAST_BATCH_SIZE or 1),
            broadcast_cooldown_hours=s.NOTIFICATIONS_BROADCAST_COOLDOWN_HOURS,
            job_attempts=max(1, s.NOTIFICATIONS_JOB_ATTEMPTS),
            job_backoff_seconds=max(0, s.NOTIFICATIONS_JOB_BACKOFF_SECONDS),
            timezone=s.NOTIFICATIONS_TIMEZONE,
        )

    def _cron(self, custom: Optional[str]) -> str:
        if custom and custom.strip():
            return custom.strip()
        return self.resolve_default_cron()

    def resolve_default_cron(self) -> str:
        """Default expression shared by every kind without its own override."""
        if self.source.NOTIFICATIONS_CRON_EXPRESSION:
            return self.source.NOTIFICATIONS_CRON_EXPRESSION.strip()

        mode = (self.source.NOTIFICATIONS_SCHEDULE_MODE or "").lower()
        if mode == "half-day":
            return HALF_DAY_CRON
        return HOURLY_CRON


def crontab_from_expression(expression: str) -> crontab:
    """
    Convert a cron expression into a Celery crontab.

    Accepts the standard five fields (minute hour day-of-month month day-of-week).
    Six-field expressions with a leading seconds field are accepted and the
    seconds field is dropped, since beat resolution is one minute.
    """
    fields = expression.split()
    if len(fields) == 6:
        fields = fields[1:]
    if len(fields) != 5:
        raise ValueError(f"Invalid cron expression: {expression!r}")

    minute, hour, day_of_month, month_of_year, day_of_week = fields
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


notification_settings_provider = NotificationSettingsProvider()
