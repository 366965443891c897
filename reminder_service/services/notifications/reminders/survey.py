from datetime import datetime
from typing import Dict, List

from reminder_service.db.models import NotificationType
from reminder_service.schemas.notification_schemas import NotificationPayload
from reminder_service.utils.datetime_utils import whole_days_between

from .base import BaseReminderEvaluator
from .messages import survey_message


class SurveyReminderEvaluator(BaseReminderEvaluator):
    notification_type = NotificationType.PENDING_SURVEY

    @property
    def threshold_days(self) -> int:
        return self.config.survey_reminder_days

    async def find_eligible(
        self, user_ids: List[int], now: datetime
    ) -> Dict[int, NotificationPayload]:
        last_survey = await self.signals.get_last_survey_at(user_ids)
        threshold = self.threshold_days

        eligible = {}
        for user_id in user_ids:
            submitted_at = last_survey.get(user_id)
            # Never submitted counts as pending for exactly the threshold
            gap_days = (
                whole_days_between(now, submitted_at) if submitted_at else threshold
            )
            if gap_days >= threshold:
                eligible[user_id] = survey_message(max(gap_days, threshold))
        return eligible
