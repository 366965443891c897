from datetime import datetime
from typing import Dict, List

from reminder_service.db.models import NotificationType
from reminder_service.schemas.notification_schemas import NotificationPayload
from reminder_service.utils.datetime_utils import local_date, local_hour
from reminder_service.utils.logging import get_logger

from .base import BaseReminderEvaluator
from .messages import mood_message

logger = get_logger()


class MoodReminderEvaluator(BaseReminderEvaluator):
    """Users without a mood entry for today, once the local reminder hour has passed."""

    notification_type = NotificationType.MISSING_MOOD

    def is_enabled(self, now: datetime) -> bool:
        reminder_hour = self.config.mood_reminder_hour
        if local_hour(now, self.config.timezone) < reminder_hour:
            logger.debug(f"Skipping mood reminders before configured hour {reminder_hour}")
            return False
        return True

    async def find_eligible(
        self, user_ids: List[int], now: datetime
    ) -> Dict[int, NotificationPayload]:
        today = local_date(now, self.config.timezone)
        with_mood = await self.signals.get_users_with_mood_on(user_ids, today)

        return {
            user_id: mood_message() for user_id in user_ids if user_id not in with_mood
        }
