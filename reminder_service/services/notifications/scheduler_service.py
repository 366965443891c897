from datetime import datetime
from typing import Dict, Optional

from reminder_service.db.models import REMINDER_TYPES, NotificationType
from reminder_service.utils.datetime_utils import naive_utc_now, to_naive_utc
from reminder_service.utils.logging import get_logger

from .batch_enqueuer import BatchEnqueuer
from .concurrency_guard import ConcurrencyGuard
from .delivery_service import DeliveryOrchestrator
from .reminders.messages import suggested_activities_message

logger = get_logger()

ALL_REMINDERS_KEY = "all"
SUGGESTED_ACTIVITIES_COOLDOWN_HOURS = 12


class ReminderSchedulerService:
    """Entry points for scheduled reminder passes and event-driven notifications."""

    def __init__(
        self,
        enqueuer: BatchEnqueuer,
        delivery: DeliveryOrchestrator,
        guard: ConcurrencyGuard,
    ):
        self.enqueuer = enqueuer
        self.delivery = delivery
        self.guard = guard

    async def run_reminder_pass(
        self, reminder_type: NotificationType, now: Optional[datetime] = None
    ) -> int:
        """
        Enqueue batches for one reminder kind unless a pass for it is already running.

        Returns:
            int: number of batch jobs enqueued, 0 when skipped or on failure
        """
        as_of = to_naive_utc(now) if now else naive_utc_now()

        with self.guard.hold(reminder_type.value) as acquired:
            if not acquired:
                logger.warning(
                    f"{reminder_type.value} pass is already running, skipping this run"
                )
                return 0

            try:
                return await self.enqueuer.run(reminder_type, as_of)
            except Exception as e:
                logger.exception(f"{reminder_type.value} pass failed: {e}")
                return 0

    async def process_all_reminders(
        self, now: Optional[datetime] = None
    ) -> Dict[str, int]:
        """
        Enqueue batches for every reminder kind in one guarded pass.

        Each kind also takes its own key, so a kind whose per-kind pass is
        running is reported with 0 batches instead of being enqueued twice.
        """
        as_of = to_naive_utc(now) if now else naive_utc_now()

        with self.guard.hold(ALL_REMINDERS_KEY) as acquired:
            if not acquired:
                logger.warning("Combined reminder pass is already running, skipping")
                return {}

            results: Dict[str, int] = {}
            try:
                for reminder_type in REMINDER_TYPES:
                    with self.guard.hold(reminder_type.value) as kind_acquired:
                        if not kind_acquired:
                            logger.warning(
                                f"{reminder_type.value} pass is already running, "
                                "skipping it in the combined pass"
                            )
                            results[reminder_type.value] = 0
                            continue
                        results[reminder_type.value] = await self.enqueuer.run(
                            reminder_type, as_of
                        )
            except Exception as e:
                logger.exception(f"Combined reminder pass failed: {e}")
            return results

    async def notify_suggested_activities_generated(self, user_id: int) -> bool:
        return await self.delivery.send_notification_if_allowed(
            user_id,
            NotificationType.SUGGESTED_ACTIVITIES_READY,
            suggested_activities_message(),
            SUGGESTED_ACTIVITIES_COOLDOWN_HOURS,
        )
