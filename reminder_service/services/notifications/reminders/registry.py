from typing import Callable, Dict, List, Optional

from reminder_service.config.notification_settings import NotificationSettings
from reminder_service.db.models import NotificationType
from reminder_service.providers.reminder_signal_provider import ReminderSignalProvider
from reminder_service.utils.logging import get_logger

from ..delivery_service import DeliveryOrchestrator
from ..tracker import NotificationTrackerService
from .article import ArticleReminderEvaluator
from .base import BaseReminderEvaluator
from .global_activity import GlobalActivityReminderEvaluator
from .inactivity import InactivityReminderEvaluator
from .mood import MoodReminderEvaluator
from .survey import SurveyReminderEvaluator

logger = get_logger()

EvaluatorFactory = Callable[
    [
        ReminderSignalProvider,
        NotificationTrackerService,
        DeliveryOrchestrator,
        NotificationSettings,
    ],
    BaseReminderEvaluator,
]


class ReminderEvaluatorRegistry:
    """Registry mapping reminder kinds to their evaluator"""

    _factories: Dict[NotificationType, EvaluatorFactory] = {
        NotificationType.INACTIVITY_REMINDER: InactivityReminderEvaluator,
        NotificationType.MISSING_MOOD: MoodReminderEvaluator,
        NotificationType.PENDING_SURVEY: SurveyReminderEvaluator,
        NotificationType.UNREAD_ARTICLE: ArticleReminderEvaluator,
        NotificationType.GLOBAL_INACTIVITY_REMINDER: GlobalActivityReminderEvaluator,
    }

    @classmethod
    def create_evaluator(
        cls,
        reminder_type: NotificationType,
        signals: ReminderSignalProvider,
        tracker: NotificationTrackerService,
        delivery: DeliveryOrchestrator,
        config: NotificationSettings,
    ) -> Optional[BaseReminderEvaluator]:
        factory = cls._factories.get(reminder_type)
        if factory:
            return factory(signals, tracker, delivery, config)

        logger.warning(f"No evaluator registered for reminder type: {reminder_type}")
        return None

    @classmethod
    def register_evaluator(
        cls, reminder_type: NotificationType, factory: EvaluatorFactory
    ):
        cls._factories[reminder_type] = factory
        logger.info(f"Registered evaluator for reminder type: {reminder_type.value}")

    @classmethod
    def list_registered_types(cls) -> List[NotificationType]:
        return list(cls._factories.keys())

    @classmethod
    def is_registered(cls, reminder_type: NotificationType) -> bool:
        return reminder_type in cls._factories
