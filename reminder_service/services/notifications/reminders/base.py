from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from reminder_service.config.notification_settings import NotificationSettings
from reminder_service.db.models import NotificationType
from reminder_service.providers.reminder_signal_provider import ReminderSignalProvider
from reminder_service.schemas.notification_schemas import (
    NotificationPayload,
    NotificationProcessingStats,
)
from reminder_service.utils.errors import DomainQueryFailure
from reminder_service.utils.logging import get_logger

from ..delivery_service import DeliveryOrchestrator
from ..tracker import NotificationTrackerService

logger = get_logger()


class BaseReminderEvaluator(ABC):
    """
    Shared flow for every scheduled reminder kind.

    Subclasses load their engagement signal for a batch of users and return the
    payload for each user that crossed the kind's threshold. The base class then
    applies the resend cooldown and hands the rest to the delivery orchestrator.
    """

    notification_type: NotificationType

    def __init__(
        self,
        signals: ReminderSignalProvider,
        tracker: NotificationTrackerService,
        delivery: DeliveryOrchestrator,
        config: NotificationSettings,
    ):
        self.signals = signals
        self.tracker = tracker
        self.delivery = delivery
        self.config = config

    @property
    def threshold_days(self) -> Optional[int]:
        """Eligibility threshold in days, or None when the kind has none."""
        return None

    @abstractmethod
    async def find_eligible(
        self, user_ids: List[int], now: datetime
    ) -> Dict[int, NotificationPayload]:
        """Map each eligible user id to the payload it should receive."""
        pass

    def is_enabled(self, now: datetime) -> bool:
        return self.threshold_days is None or self.threshold_days > 0

    async def execute(
        self, user_ids: List[int], now: datetime
    ) -> NotificationProcessingStats:
        stats = NotificationProcessingStats(type=self.notification_type)
        kind = self.notification_type.value

        if not user_ids or not self.is_enabled(now):
            return stats

        try:
            eligible = await self.find_eligible(user_ids, now)
        except DomainQueryFailure as e:
            logger.error(f"Skipping {kind} batch of {len(user_ids)} users: {e.message}")
            return stats

        if not eligible:
            logger.debug(f"No users matched {kind} criteria for current batch")
            return stats

        recently_notified = await self.tracker.get_recently_notified(
            list(eligible),
            self.notification_type,
            self.config.resend_cooldown_hours,
            now,
        )

        for user_id, payload in eligible.items():
            stats.attempted += 1

            if user_id in recently_notified:
                stats.skipped += 1
                continue

            try:
                sent = await self.delivery.send_notification(
                    user_id, self.notification_type, payload
                )
            except Exception as e:
                logger.error(f"Failed to queue {kind} for user {user_id}: {e}")
                sent = False

            if sent:
                stats.sent += 1
            else:
                stats.failed += 1

        logger.info(
            f"{kind}: attempted={stats.attempted} sent={stats.sent} "
            f"skipped={stats.skipped} failed={stats.failed}"
        )
        return stats
