from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from reminder_service.db.models import NotificationType
from reminder_service.schemas.notification_schemas import NotificationPayload
from reminder_service.utils.logging import get_logger

from .batch_enqueuer import iter_active_owner_pages
from .delivery_service import DeliveryOrchestrator
from .device_registry import DeviceRegistryService
from .job_queue import NotificationsQueueService

logger = get_logger()


class BroadcastService:
    """Admin-triggered fan-out of one message to every active device owner."""

    def __init__(
        self,
        devices: DeviceRegistryService,
        queue: NotificationsQueueService,
        delivery: DeliveryOrchestrator,
        batch_size: int = 50,
        cooldown_hours: Optional[int] = None,
    ):
        self.devices = devices
        self.queue = queue
        self.delivery = delivery
        self.batch_size = max(1, batch_size)
        self.cooldown_hours = cooldown_hours

    async def broadcast(self, payload: NotificationPayload) -> Dict[str, str]:
        job_id = await self.queue.add_broadcast_fanout_job(payload)
        logger.info(f"Queued broadcast fan-out {job_id}: {payload.title!r}")
        return {"status": "queued", "job_id": job_id}

    async def dispatch_fanout(self, payload: NotificationPayload) -> int:
        """Enqueue one page job per page of active owners."""
        pages = 0
        async for user_ids in iter_active_owner_pages(self.devices, self.batch_size):
            await self.queue.add_broadcast_page_job(user_ids, payload)
            pages += 1

        logger.info(f"Broadcast fanned out into {pages} page jobs")
        return pages

    async def process_page(
        self, user_ids: List[int], payload: NotificationPayload
    ) -> Dict[str, int]:
        sent = 0
        failed = 0
        for user_id in user_ids:
            try:
                accepted = await self.delivery.send_notification_if_allowed(
                    user_id,
                    NotificationType.CUSTOM_BROADCAST,
                    payload,
                    self.cooldown_hours,
                )
            except SQLAlchemyError:
                raise
            except Exception as e:
                logger.error(f"Broadcast to user {user_id} failed: {e}")
                accepted = False

            if accepted:
                sent += 1
            else:
                failed += 1

        logger.info(f"Broadcast page processed: sent={sent} failed={failed}")
        return {"sent": sent, "failed": failed}
