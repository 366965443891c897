from datetime import datetime, timedelta
from typing import List, Optional, Set, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from reminder_service.db.models import NotificationType, UserNotificationTracker
from reminder_service.utils.datetime_utils import naive_utc_now, to_naive_utc
from reminder_service.utils.logging import get_logger

logger = get_logger()


class NotificationTrackerService:
    """Last successful send per (user, notification type)."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def _find(
        self, user_id: int, notification_type: NotificationType
    ) -> Optional[UserNotificationTracker]:
        return self.db.scalar(
            select(UserNotificationTracker).where(
                UserNotificationTracker.user_id == user_id,
                UserNotificationTracker.type == notification_type,
            )
        )

    async def get_last_sent_at(
        self, user_id: int, notification_type: NotificationType
    ) -> Optional[datetime]:
        tracker = self._find(user_id, notification_type)
        return tracker.last_sent_at if tracker else None

    async def was_sent_recently(
        self,
        user_id: int,
        notification_type: NotificationType,
        cooldown_hours: int,
        now: Optional[datetime] = None,
    ) -> bool:
        if cooldown_hours <= 0:
            return False

        last_sent_at = await self.get_last_sent_at(user_id, notification_type)
        if last_sent_at is None:
            return False

        since = to_naive_utc(now or naive_utc_now()) - timedelta(hours=cooldown_hours)
        return last_sent_at >= since

    async def get_recently_notified(
        self,
        user_ids: List[int],
        notification_type: NotificationType,
        cooldown_hours: int,
        now: datetime,
    ) -> Set[int]:
        """Users among `user_ids` that received this type within the cooldown window."""
        if not user_ids or cooldown_hours <= 0:
            return set()

        since = to_naive_utc(now) - timedelta(hours=cooldown_hours)
        rows = self.db.scalars(
            select(UserNotificationTracker.user_id).where(
                UserNotificationTracker.user_id.in_(user_ids),
                UserNotificationTracker.type == notification_type,
                UserNotificationTracker.last_sent_at >= since,
            )
        ).all()
        return set(rows)

    async def mark_sent(
        self,
        user_id: int,
        notification_type: NotificationType,
        sent_at: datetime,
    ) -> UserNotificationTracker:
        sent_at = to_naive_utc(sent_at)

        tracker = self._find(user_id, notification_type)
        if tracker is None:
            tracker = UserNotificationTracker(
                user_id=user_id, type=notification_type, last_sent_at=sent_at
            )
            self.db.add(tracker)
            try:
                self.db.commit()
                return tracker
            except IntegrityError:
                self.db.rollback()
                tracker = self._find(user_id, notification_type)
                if tracker is None:
                    raise

        tracker.last_sent_at = sent_at
        self.db.commit()
        return tracker

    async def list_trackers(
        self, user_id: Optional[int], page: int, per_page: int
    ) -> Tuple[List[UserNotificationTracker], int]:
        stmt = select(UserNotificationTracker)
        count_stmt = select(func.count()).select_from(UserNotificationTracker)
        if user_id is not None:
            stmt = stmt.where(UserNotificationTracker.user_id == user_id)
            count_stmt = count_stmt.where(UserNotificationTracker.user_id == user_id)

        total = self.db.scalar(count_stmt) or 0
        items = self.db.scalars(
            stmt.order_by(
                UserNotificationTracker.last_sent_at.desc(),
                UserNotificationTracker.id,
            )
            .offset((page - 1) * per_page)
            .limit(per_page)
        ).all()
        return list(items), total
