from .base import BaseReminderEvaluator
from .registry import ReminderEvaluatorRegistry
from .inactivity import InactivityReminderEvaluator
from .mood import MoodReminderEvaluator
from .survey import SurveyReminderEvaluator
from .article import ArticleReminderEvaluator
from .global_activity import GlobalActivityReminderEvaluator

__all__ = [
    "BaseReminderEvaluator",
    "ReminderEvaluatorRegistry",
    "InactivityReminderEvaluator",
    "MoodReminderEvaluator",
    "SurveyReminderEvaluator",
    "ArticleReminderEvaluator",
    "GlobalActivityReminderEvaluator",
]
