from datetime import date, datetime
from typing import Dict, List, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reminder_service.db.models import (
    Activity,
    MoodEntry,
    User,
    UserHiddenArticle,
    UserSurvey,
)
from reminder_service.utils.errors import DomainQueryFailure
from reminder_service.utils.logging import get_logger

logger = get_logger()


class ReminderSignalProvider:
    """Bulk "last timestamp per user" lookups over the engagement tables."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def _fetch(self, signal: str, stmt) -> List:
        try:
            return list(self.db.execute(stmt).all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to load {signal} signal: {e}")
            raise DomainQueryFailure(f"Failed to load {signal} signal") from e

    async def get_last_activity_with_signup(
        self, user_ids: List[int]
    ) -> Dict[int, datetime]:
        """Latest activity per user, falling back to the account creation time."""
        if not user_ids:
            return {}

        stmt = (
            select(User.id, User.created_at, func.max(Activity.created_at))
            .outerjoin(Activity, Activity.user_id == User.id)
            .where(User.id.in_(user_ids))
            .group_by(User.id, User.created_at)
        )
        rows = self._fetch("activity", stmt)
        return {user_id: last or created for user_id, created, last in rows}

    async def get_users_with_mood_on(
        self, user_ids: List[int], mood_date: date
    ) -> Set[int]:
        if not user_ids:
            return set()

        stmt = (
            select(MoodEntry.user_id)
            .where(MoodEntry.user_id.in_(user_ids), MoodEntry.mood_date == mood_date)
            .distinct()
        )
        return {row[0] for row in self._fetch("mood", stmt)}

    async def get_last_survey_at(self, user_ids: List[int]) -> Dict[int, datetime]:
        if not user_ids:
            return {}

        stmt = (
            select(UserSurvey.user_id, func.max(UserSurvey.updated_at))
            .where(UserSurvey.user_id.in_(user_ids))
            .group_by(UserSurvey.user_id)
        )
        return dict(self._fetch("survey", stmt))

    async def get_last_article_dismissed_at(
        self, user_ids: List[int]
    ) -> Dict[int, datetime]:
        if not user_ids:
            return {}

        stmt = (
            select(UserHiddenArticle.user_id, func.max(UserHiddenArticle.created_at))
            .where(UserHiddenArticle.user_id.in_(user_ids))
            .group_by(UserHiddenArticle.user_id)
        )
        return dict(self._fetch("article", stmt))

    async def get_profile_timestamps(
        self, user_ids: List[int]
    ) -> Dict[int, Optional[datetime]]:
        """Profile update time per user, or creation time when never updated."""
        if not user_ids:
            return {}

        stmt = select(User.id, User.updated_at, User.created_at).where(
            User.id.in_(user_ids)
        )
        rows = self._fetch("profile", stmt)
        return {user_id: updated or created for user_id, updated, created in rows}

    async def get_last_mood_at(self, user_ids: List[int]) -> Dict[int, datetime]:
        if not user_ids:
            return {}

        stmt = (
            select(MoodEntry.user_id, func.max(MoodEntry.updated_at))
            .where(MoodEntry.user_id.in_(user_ids))
            .group_by(MoodEntry.user_id)
        )
        return dict(self._fetch("mood", stmt))

    async def get_last_activity_at(self, user_ids: List[int]) -> Dict[int, datetime]:
        if not user_ids:
            return {}

        stmt = (
            select(Activity.user_id, func.max(Activity.updated_at))
            .where(Activity.user_id.in_(user_ids))
            .group_by(Activity.user_id)
        )
        return dict(self._fetch("activity", stmt))
