from datetime import datetime
from typing import Dict, List, Optional

from reminder_service.db.models import NotificationType
from reminder_service.schemas.notification_schemas import NotificationPayload
from reminder_service.utils.datetime_utils import whole_days_between

from .base import BaseReminderEvaluator
from .messages import global_inactivity_message

# Largest first, the first tier a user clears is the one reported
INACTIVITY_TIERS = (180, 30, 14)


def resolve_tier(gap_days: int) -> Optional[int]:
    for tier in INACTIVITY_TIERS:
        if gap_days >= tier:
            return tier
    return None


class GlobalActivityReminderEvaluator(BaseReminderEvaluator):
    """
    Users with no engagement of any kind for two weeks or more.

    The last engagement is the latest of the profile update time (creation time
    when never updated), activities, mood entries, surveys and dismissed articles.
    """

    notification_type = NotificationType.GLOBAL_INACTIVITY_REMINDER

    async def find_eligible(
        self, user_ids: List[int], now: datetime
    ) -> Dict[int, NotificationPayload]:
        sources = [
            await self.signals.get_profile_timestamps(user_ids),
            await self.signals.get_last_activity_at(user_ids),
            await self.signals.get_last_mood_at(user_ids),
            await self.signals.get_last_survey_at(user_ids),
            await self.signals.get_last_article_dismissed_at(user_ids),
        ]

        eligible = {}
        for user_id in user_ids:
            timestamps = [s[user_id] for s in sources if s.get(user_id) is not None]
            if not timestamps:
                continue

            gap_days = whole_days_between(now, max(timestamps))
            tier = resolve_tier(gap_days)
            if tier is None:
                continue

            eligible[user_id] = global_inactivity_message(gap_days, tier)
        return eligible
