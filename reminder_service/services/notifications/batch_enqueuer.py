import asyncio
from datetime import datetime
from typing import AsyncIterator, List, Optional

from reminder_service.config.notification_settings import PaginationSettings
from reminder_service.db.models import NotificationType
from reminder_service.utils.logging import get_logger

from .device_registry import DeviceRegistryService
from .job_queue import NotificationsQueueService

logger = get_logger()


async def iter_active_owner_pages(
    devices: DeviceRegistryService, page_size: int, delay_ms: int = 0
) -> AsyncIterator[List[int]]:
    """
    Yield pages of distinct user ids that own at least one active token.

    Pages are keyset-paginated on user id, ascending. The walk stops at the
    first page shorter than `page_size`; empty pages are never yielded.
    """
    page_size = max(1, page_size)
    delay_ms = max(0, delay_ms)
    last_user_id: Optional[int] = None

    while True:
        user_ids = await devices.get_active_owner_page(last_user_id, page_size)
        if user_ids:
            yield user_ids
            last_user_id = user_ids[-1]

        if len(user_ids) < page_size:
            break

        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)


class BatchEnqueuer:
    """Splits the active device owners into reminder batch jobs."""

    def __init__(
        self,
        devices: DeviceRegistryService,
        queue: NotificationsQueueService,
        pagination: PaginationSettings,
    ):
        self.devices = devices
        self.queue = queue
        self.pagination = pagination

    async def run(self, reminder_type: NotificationType, now: datetime) -> int:
        """Enqueue one batch job per page of active owners and return the count."""
        batches = 0
        users = 0

        async for user_ids in iter_active_owner_pages(
            self.devices, self.pagination.page_size, self.pagination.delay_ms
        ):
            await self.queue.add_reminder_batch_job(reminder_type, user_ids, now)
            batches += 1
            users += len(user_ids)

        logger.info(
            f"Enqueued {batches} {reminder_type.value} batches covering {users} users"
        )
        return batches
