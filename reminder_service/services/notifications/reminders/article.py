from datetime import datetime
from typing import Dict, List

from reminder_service.db.models import NotificationType
from reminder_service.schemas.notification_schemas import NotificationPayload
from reminder_service.utils.datetime_utils import whole_days_between

from .base import BaseReminderEvaluator
from .messages import article_message


class ArticleReminderEvaluator(BaseReminderEvaluator):
    """Users who have not dismissed an article within the threshold."""

    notification_type = NotificationType.UNREAD_ARTICLE

    @property
    def threshold_days(self) -> int:
        return self.config.article_reminder_days

    async def find_eligible(
        self, user_ids: List[int], now: datetime
    ) -> Dict[int, NotificationPayload]:
        last_dismissed = await self.signals.get_last_article_dismissed_at(user_ids)
        threshold = self.threshold_days

        eligible = {}
        for user_id in user_ids:
            dismissed_at = last_dismissed.get(user_id)
            gap_days = (
                whole_days_between(now, dismissed_at) if dismissed_at else threshold
            )
            if gap_days >= threshold:
                eligible[user_id] = article_message(max(gap_days, threshold))
        return eligible
