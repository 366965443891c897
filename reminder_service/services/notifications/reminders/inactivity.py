from datetime import datetime
from typing import Dict, List

from reminder_service.db.models import NotificationType
from reminder_service.schemas.notification_schemas import NotificationPayload
from reminder_service.utils.datetime_utils import whole_days_between

from .base import BaseReminderEvaluator
from .messages import inactivity_message


class InactivityReminderEvaluator(BaseReminderEvaluator):
    """Users who have not added an activity since the threshold (or since signing up)."""

    notification_type = NotificationType.INACTIVITY_REMINDER

    @property
    def threshold_days(self) -> int:
        return self.config.inactivity_threshold_days

    async def find_eligible(
        self, user_ids: List[int], now: datetime
    ) -> Dict[int, NotificationPayload]:
        last_activity = await self.signals.get_last_activity_with_signup(user_ids)

        eligible = {}
        for user_id in user_ids:
            last_seen = last_activity.get(user_id)
            if last_seen is None:
                continue

            gap_days = whole_days_between(now, last_seen)
            if gap_days >= self.threshold_days:
                eligible[user_id] = inactivity_message(gap_days, self.threshold_days)
        return eligible
