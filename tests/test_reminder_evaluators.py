import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from reminder_service.db.models import NotificationType, REMINDER_TYPES
from reminder_service.services.notification_service_provider import (
    NotificationServiceProvider,
)
from reminder_service.services.notifications.reminders import (
    GlobalActivityReminderEvaluator,
    InactivityReminderEvaluator,
    ReminderEvaluatorRegistry,
)
from reminder_service.services.notifications.reminders.global_activity import (
    resolve_tier,
)
from reminder_service.utils.errors import DomainQueryFailure


def _provider(db_session, fake_queue, push_channel, config):
    return NotificationServiceProvider(
        db_session, config=config, queue=fake_queue, push_channel=push_channel
    )


class TestRegistry:
    def test_every_reminder_type_has_an_evaluator(self):
        for reminder_type in REMINDER_TYPES:
            assert ReminderEvaluatorRegistry.is_registered(reminder_type)

    def test_unknown_type_returns_none(self, provider):
        assert provider.evaluator(NotificationType.CUSTOM_BROADCAST) is None

    def test_create_evaluator(self, provider):
        evaluator = provider.evaluator(NotificationType.INACTIVITY_REMINDER)
        assert isinstance(evaluator, InactivityReminderEvaluator)


class TestInactivityReminder:
    @pytest.mark.asyncio
    async def test_inactive_user_is_notified_then_held_by_cooldown(
        self, provider, fake_queue, factory, now
    ):
        factory.user(1)
        factory.activity(1, now - timedelta(days=5))
        evaluator = provider.evaluator(NotificationType.INACTIVITY_REMINDER)

        stats = await evaluator.execute([1], now)

        assert (stats.attempted, stats.sent, stats.skipped, stats.failed) == (1, 1, 0, 0)
        [job] = fake_queue.of_type("push-delivery")
        assert job.user_id == 1
        assert "5 days" in job.payload.body
        assert job.payload.data == {"type": "inactivity-reminder"}

        # The delivery worker records the send; an hour later the user is held back
        factory.tracker(1, NotificationType.INACTIVITY_REMINDER, now)
        stats = await evaluator.execute([1], now + timedelta(hours=1))

        assert (stats.attempted, stats.sent, stats.skipped) == (1, 0, 1)
        assert len(fake_queue.jobs) == 1

    @pytest.mark.asyncio
    async def test_recent_activity_is_not_eligible(self, provider, fake_queue, factory, now):
        factory.user(1)
        factory.activity(1, now - timedelta(days=10))
        factory.activity(1, now - timedelta(days=1))
        evaluator = provider.evaluator(NotificationType.INACTIVITY_REMINDER)

        stats = await evaluator.execute([1], now)

        assert stats.attempted == 0
        assert fake_queue.jobs == []

    @pytest.mark.asyncio
    async def test_signup_time_is_used_without_activities(self, provider, factory, now):
        factory.user(1, created_at=now - timedelta(days=4))
        factory.user(2, created_at=now - timedelta(days=1))
        evaluator = provider.evaluator(NotificationType.INACTIVITY_REMINDER)

        eligible = await evaluator.find_eligible([1, 2], now)

        assert list(eligible) == [1]
        assert "4 days" in eligible[1].body

    @pytest.mark.asyncio
    async def test_unknown_user_is_ignored(self, provider, now):
        evaluator = provider.evaluator(NotificationType.INACTIVITY_REMINDER)

        assert await evaluator.find_eligible([404], now) == {}

    @pytest.mark.asyncio
    async def test_zero_threshold_disables_kind(
        self, db_session, fake_queue, push_channel, settings_factory, factory, now
    ):
        factory.user(1)
        provider = _provider(
            db_session,
            fake_queue,
            push_channel,
            settings_factory(inactivity_threshold_days=0),
        )
        evaluator = provider.evaluator(NotificationType.INACTIVITY_REMINDER)

        stats = await evaluator.execute([1], now)

        assert stats.attempted == 0
        assert fake_queue.jobs == []

    @pytest.mark.asyncio
    async def test_domain_query_failure_skips_batch(self, provider, fake_queue, factory, now):
        factory.user(1)
        evaluator = provider.evaluator(NotificationType.INACTIVITY_REMINDER)

        with patch.object(
            provider.signals,
            "get_last_activity_with_signup",
            AsyncMock(side_effect=DomainQueryFailure("Failed to load activity signal")),
        ):
            stats = await evaluator.execute([1], now)

        assert stats.attempted == 0
        assert fake_queue.jobs == []

    @pytest.mark.asyncio
    async def test_queue_failure_counts_as_failed_and_continues(self, provider, factory, now):
        factory.user(1, created_at=now - timedelta(days=30))
        factory.user(2, created_at=now - timedelta(days=30))
        evaluator = provider.evaluator(NotificationType.INACTIVITY_REMINDER)

        send = AsyncMock(side_effect=[RuntimeError("broker down"), True])
        with patch.object(evaluator.delivery, "send_notification", send):
            stats = await evaluator.execute([1, 2], now)

        assert (stats.attempted, stats.sent, stats.failed) == (2, 1, 1)
        assert send.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_batch_returns_empty_stats(self, provider, now):
        evaluator = provider.evaluator(NotificationType.INACTIVITY_REMINDER)

        stats = await evaluator.execute([], now)

        assert stats.type == NotificationType.INACTIVITY_REMINDER
        assert (stats.attempted, stats.sent, stats.skipped, stats.failed) == (0, 0, 0, 0)


class TestMoodReminder:
    @pytest.mark.asyncio
    async def test_nothing_is_sent_before_reminder_hour(
        self, db_session, fake_queue, push_channel, settings_factory, factory, now
    ):
        factory.user(1)
        provider = _provider(
            db_session, fake_queue, push_channel, settings_factory(mood_reminder_hour=13)
        )
        evaluator = provider.evaluator(NotificationType.MISSING_MOOD)

        stats = await evaluator.execute([1], now)

        assert stats.attempted == 0
        assert fake_queue.jobs == []

    @pytest.mark.asyncio
    async def test_users_without_todays_mood_are_reminded(self, provider, fake_queue, factory, now):
        factory.user(1)
        factory.user(2)
        factory.mood(2, now.date())
        factory.mood(1, now.date() - timedelta(days=1))
        evaluator = provider.evaluator(NotificationType.MISSING_MOOD)

        stats = await evaluator.execute([1, 2], now)

        assert stats.sent == 1
        [job] = fake_queue.of_type("push-delivery")
        assert job.user_id == 1
        assert job.payload.title == "How are you feeling today?"

    @pytest.mark.asyncio
    async def test_reminder_hour_uses_configured_timezone(
        self, db_session, fake_queue, push_channel, settings_factory, factory, now
    ):
        # 12:00 UTC is 21:00 in Tokyo
        factory.user(1)
        provider = _provider(
            db_session,
            fake_queue,
            push_channel,
            settings_factory(mood_reminder_hour=20, timezone="Asia/Tokyo"),
        )
        evaluator = provider.evaluator(NotificationType.MISSING_MOOD)

        assert evaluator.is_enabled(now)
        assert not evaluator.is_enabled(now - timedelta(hours=2))


class TestSurveyAndArticleReminders:
    @pytest.mark.asyncio
    async def test_never_submitted_survey_is_pending(self, provider, factory, now):
        factory.user(1)
        evaluator = provider.evaluator(NotificationType.PENDING_SURVEY)

        eligible = await evaluator.find_eligible([1], now)

        assert "3 days" in eligible[1].body
        assert eligible[1].data == {"type": "pending-survey"}

    @pytest.mark.asyncio
    async def test_recent_survey_is_not_pending(self, provider, factory, now):
        factory.user(1)
        factory.user(2)
        factory.survey(1, now - timedelta(days=1))
        factory.survey(2, now - timedelta(days=8))
        evaluator = provider.evaluator(NotificationType.PENDING_SURVEY)

        eligible = await evaluator.find_eligible([1, 2], now)

        assert list(eligible) == [2]
        assert "8 days" in eligible[2].body

    @pytest.mark.asyncio
    async def test_recently_dismissed_article_is_not_eligible(self, provider, factory, now):
        factory.user(1)
        factory.user(2)
        factory.hidden_article(1, now - timedelta(hours=5))
        factory.hidden_article(2, now - timedelta(days=6))
        evaluator = provider.evaluator(NotificationType.UNREAD_ARTICLE)

        eligible = await evaluator.find_eligible([1, 2, 3], now)

        assert set(eligible) == {2, 3}
        assert eligible[2].data == {"type": "unread-article"}


class TestGlobalActivityReminder:
    @pytest.mark.parametrize(
        "gap_days, tier",
        [(13, None), (14, 14), (29, 14), (30, 30), (179, 30), (180, 180), (400, 180)],
    )
    def test_resolve_tier(self, gap_days, tier):
        assert resolve_tier(gap_days) == tier

    @pytest.mark.asyncio
    async def test_latest_engagement_across_sources_decides_tier(self, provider, factory, now):
        long_ago = now - timedelta(days=300)
        factory.user(1, created_at=long_ago)
        factory.activity(1, now - timedelta(days=90))
        factory.mood(1, (now - timedelta(days=40)).date(), at=now - timedelta(days=40))
        factory.user(2, created_at=long_ago)
        factory.survey(2, now - timedelta(days=10))
        evaluator = provider.evaluator(NotificationType.GLOBAL_INACTIVITY_REMINDER)
        assert isinstance(evaluator, GlobalActivityReminderEvaluator)

        eligible = await evaluator.find_eligible([1, 2], now)

        assert list(eligible) == [1]
        assert eligible[1].data == {
            "type": "global-inactivity-reminder",
            "daysWithoutActivity": "40",
        }
        assert "a month" in eligible[1].body

    @pytest.mark.asyncio
    async def test_profile_update_counts_as_engagement(self, provider, factory, now):
        factory.user(
            1,
            created_at=now - timedelta(days=400),
            updated_at=now - timedelta(days=15),
        )
        evaluator = provider.evaluator(NotificationType.GLOBAL_INACTIVITY_REMINDER)

        eligible = await evaluator.find_eligible([1], now)

        assert eligible[1].data["daysWithoutActivity"] == "15"
        assert eligible[1].body.startswith("Two weeks")

    @pytest.mark.asyncio
    async def test_half_year_tier(self, provider, fake_queue, factory, now):
        factory.user(1, created_at=now - timedelta(days=200))
        evaluator = provider.evaluator(NotificationType.GLOBAL_INACTIVITY_REMINDER)

        stats = await evaluator.execute([1], now)

        assert stats.sent == 1
        [job] = fake_queue.jobs
        assert job.notification_type == NotificationType.GLOBAL_INACTIVITY_REMINDER
        assert "half a year" in job.payload.body
