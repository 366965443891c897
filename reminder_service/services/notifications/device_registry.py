from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from reminder_service.db.models import DevicePlatform, User, UserDevice
from reminder_service.schemas.notification_schemas import DeviceStatistics
from reminder_service.utils.datetime_utils import naive_utc_now
from reminder_service.utils.logging import get_logger

logger = get_logger()


class DeviceRegistryService:
    """Device token registrations per user."""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def register_device(
        self,
        user_id: int,
        token: str,
        platform: DevicePlatform = DevicePlatform.UNKNOWN,
    ) -> UserDevice:
        """Upsert a registration on (user_id, token) and mark it active."""
        token = token.strip()
        now = naive_utc_now()

        device = self._find(user_id, token)
        if device is None:
            device = UserDevice(
                user_id=user_id,
                token=token,
                platform=platform,
                is_active=True,
                last_used_at=now,
            )
            self.db.add(device)
            try:
                self.db.commit()
                logger.info(f"Registered device token for user {user_id}")
                return device
            except IntegrityError:
                # Registered concurrently, fall through to the update path
                self.db.rollback()
                device = self._find(user_id, token)
                if device is None:
                    raise

        device.platform = platform
        device.is_active = True
        device.last_used_at = now
        self.db.commit()
        logger.info(f"Refreshed device token for user {user_id}")
        return device

    def _find(self, user_id: int, token: str) -> Optional[UserDevice]:
        return self.db.scalar(
            select(UserDevice).where(
                UserDevice.user_id == user_id, UserDevice.token == token
            )
        )

    async def remove_device(self, user_id: int, token: str) -> bool:
        result = self.db.execute(
            delete(UserDevice).where(
                UserDevice.user_id == user_id, UserDevice.token == token.strip()
            )
        )
        self.db.commit()
        return result.rowcount > 0

    async def get_active_tokens(self, user_id: int) -> List[str]:
        return list(
            self.db.scalars(
                select(UserDevice.token)
                .where(UserDevice.user_id == user_id, UserDevice.is_active.is_(True))
                .order_by(UserDevice.id)
            ).all()
        )

    async def get_active_owner_page(
        self, after_user_id: Optional[int], limit: int
    ) -> List[int]:
        """One page of distinct user ids owning an active token, ascending."""
        stmt = select(UserDevice.user_id).where(UserDevice.is_active.is_(True))
        if after_user_id is not None:
            stmt = stmt.where(UserDevice.user_id > after_user_id)
        stmt = stmt.distinct().order_by(UserDevice.user_id).limit(limit)
        return list(self.db.scalars(stmt).all())

    async def delete_tokens(
        self, tokens: List[str], user_id: Optional[int] = None
    ) -> int:
        """
        Delete registrations of the given tokens.

        Without `user_id` every owner's registration goes; with it only that
        user's rows are removed.
        """
        if not tokens:
            return 0
        stmt = delete(UserDevice).where(UserDevice.token.in_(list(set(tokens))))
        if user_id is not None:
            stmt = stmt.where(UserDevice.user_id == user_id)
        result = self.db.execute(stmt)
        self.db.commit()
        return result.rowcount

    async def touch_last_used(
        self, user_id: int, tokens: List[str], used_at: datetime
    ) -> None:
        if not tokens:
            return
        self.db.execute(
            update(UserDevice)
            .where(
                UserDevice.user_id == user_id,
                UserDevice.token.in_(list(set(tokens))),
            )
            .values(last_used_at=used_at)
        )
        self.db.commit()

    async def list_devices(
        self, user_id: Optional[int], page: int, per_page: int
    ) -> Tuple[List[UserDevice], int]:
        stmt = select(UserDevice)
        count_stmt = select(func.count()).select_from(UserDevice)
        if user_id is not None:
            stmt = stmt.where(UserDevice.user_id == user_id)
            count_stmt = count_stmt.where(UserDevice.user_id == user_id)

        total = self.db.scalar(count_stmt) or 0
        items = self.db.scalars(
            stmt.order_by(UserDevice.user_id, UserDevice.id)
            .offset((page - 1) * per_page)
            .limit(per_page)
        ).all()
        return list(items), total

    async def get_statistics(self) -> DeviceStatistics:
        """User counts split by whether they own an active token. Admins are excluded."""
        non_admin = ~User.roles.like("%admin%")

        total_users = (
            self.db.scalar(select(func.count()).select_from(User).where(non_admin))
            or 0
        )
        users_with_token = (
            self.db.scalar(
                select(func.count(func.distinct(UserDevice.user_id)))
                .select_from(UserDevice)
                .join(User, User.id == UserDevice.user_id)
                .where(UserDevice.is_active.is_(True), non_admin)
            )
            or 0
        )
        return DeviceStatistics(
            total_users=total_users,
            users_with_device_token=users_with_token,
            users_without_device_token=max(0, total_users - users_with_token),
        )
