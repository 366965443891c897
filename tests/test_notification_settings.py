import pytest

from reminder_service.config.notification_settings import (
    HALF_DAY_CRON,
    HOURLY_CRON,
    NotificationSettingsProvider,
    crontab_from_expression,
)
from reminder_service.config.settings import Settings
from reminder_service.schemas.job_schemas import (
    JobOptions,
    ReminderBatchJob,
    decode_job,
    encode_job,
)
from reminder_service.db.models import NotificationType


def _provider(**env):
    return NotificationSettingsProvider(Settings(_env_file=None, **env))


class TestNotificationSettingsProvider:
    def test_defaults(self):
        config = _provider().get_notification_settings()

        assert config.cron_expressions.inactivity == HOURLY_CRON
        assert config.inactivity_threshold_days == 3
        assert config.mood_reminder_hour == 10
        assert config.resend_cooldown_hours == 24
        assert config.pagination.page_size == 20
        assert config.broadcast_batch_size == 50
        assert config.broadcast_cooldown_hours is None

    def test_half_day_mode(self):
        config = _provider(NOTIFICATIONS_SCHEDULE_MODE="half-day").get_notification_settings()

        assert config.cron_expressions.mood == HALF_DAY_CRON

    def test_explicit_expression_wins_over_mode(self):
        config = _provider(
            NOTIFICATIONS_SCHEDULE_MODE="half-day",
            NOTIFICATIONS_CRON_EXPRESSION="*/30 * * * *",
        ).get_notification_settings()

        assert config.cron_expressions.surveys == "*/30 * * * *"

    def test_per_kind_override(self):
        config = _provider(
            NOTIFICATIONS_MOOD_CRON=" 0 18 * * * "
        ).get_notification_settings()

        assert config.cron_expressions.mood == "0 18 * * *"
        assert config.cron_expressions.inactivity == HOURLY_CRON

    def test_pagination_is_clamped(self):
        config = _provider(
            NOTIFICATIONS_USERS_PAGE_SIZE=0,
            NOTIFICATIONS_USERS_PAGE_DELAY_MS=-5,
            NOTIFICATIONS_BROADCAST_BATCH_SIZE=0,
        ).get_notification_settings()

        assert config.pagination.page_size == 1
        assert config.pagination.delay_ms == 0
        assert config.broadcast_batch_size == 1


class TestCrontabFromExpression:
    def test_five_fields(self):
        schedule = crontab_from_expression("15 */2 * * 1-5")

        assert schedule.minute == {15}
        assert schedule.hour == set(range(0, 24, 2))

    def test_seconds_field_is_dropped(self):
        assert crontab_from_expression("0 0 * * * *") == crontab_from_expression(
            "0 * * * *"
        )

    def test_invalid_expression(self):
        with pytest.raises(ValueError):
            crontab_from_expression("every hour")


class TestJobEnvelope:
    def test_batch_job_survives_queue_serialization(self, now):
        job = ReminderBatchJob(
            reminder_type=NotificationType.PENDING_SURVEY,
            user_ids=[3, 1, 2],
            as_of=now,
            options=JobOptions(attempts=5, backoff_seconds=1),
        )

        decoded = decode_job(encode_job(job))

        assert decoded == job

    def test_backoff_grows_exponentially(self):
        options = JobOptions(backoff_seconds=2)

        assert [options.countdown_for(n) for n in range(4)] == [2, 4, 8, 16]
