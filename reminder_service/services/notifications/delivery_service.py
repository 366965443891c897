from datetime import datetime
from typing import Optional

from reminder_service.db.models import NotificationType
from reminder_service.schemas.job_schemas import PushDeliveryJob
from reminder_service.schemas.notification_schemas import NotificationPayload
from reminder_service.utils.datetime_utils import naive_utc_now, to_naive_utc
from reminder_service.utils.errors import PermanentTokenError, TransientDeliveryError
from reminder_service.utils.logging import get_logger

from .device_registry import DeviceRegistryService
from .job_queue import NotificationsQueueService
from .push_channel import PushChannel
from .tracker import NotificationTrackerService

logger = get_logger()


class DeliveryOrchestrator:
    """Queues push deliveries and executes them against the push channel."""

    def __init__(
        self,
        devices: DeviceRegistryService,
        tracker: NotificationTrackerService,
        queue: NotificationsQueueService,
        push_channel: Optional[PushChannel] = None,
        resend_cooldown_hours: int = 24,
    ):
        self.devices = devices
        self.tracker = tracker
        self.queue = queue
        self.push_channel = push_channel
        self.resend_cooldown_hours = resend_cooldown_hours

    async def was_sent_recently(
        self,
        user_id: int,
        notification_type: NotificationType,
        cooldown_hours: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        hours = self.resend_cooldown_hours if cooldown_hours is None else cooldown_hours
        return await self.tracker.was_sent_recently(
            user_id, notification_type, hours, now
        )

    async def send_notification_if_allowed(
        self,
        user_id: int,
        notification_type: NotificationType,
        payload: NotificationPayload,
        cooldown_hours: Optional[int] = None,
    ) -> bool:
        if await self.was_sent_recently(user_id, notification_type, cooldown_hours):
            logger.debug(
                f"Skipping {notification_type.value} for user {user_id}: sent recently"
            )
            return False
        return await self.send_notification(user_id, notification_type, payload)

    async def send_notification(
        self,
        user_id: int,
        notification_type: NotificationType,
        payload: NotificationPayload,
    ) -> bool:
        """Queue a push delivery for one user."""
        job_id = await self.queue.add_push_delivery_job(
            user_id, notification_type, payload
        )
        logger.debug(
            f"Queued {notification_type.value} delivery {job_id} for user {user_id}"
        )
        return True

    async def deliver(
        self, job: PushDeliveryJob, now: Optional[datetime] = None
    ) -> dict:
        """
        Execute one push delivery job.

        Tokens the channel rejects are deleted. The tracker is only written when
        at least one token accepted the push. A transport failure deletes this
        user's tokens of the attempt and propagates so the queue retries the job.

        Returns:
            dict: counts of tokens attempted, succeeded and pruned
        """
        if self.push_channel is None:
            raise RuntimeError("DeliveryOrchestrator has no push channel configured")

        sent_at = to_naive_utc(now) if now else naive_utc_now()
        user_id = job.user_id
        notification_type = job.notification_type

        tokens = await self.devices.get_active_tokens(user_id)
        if not tokens:
            logger.info(f"No active device tokens for user {user_id}")
            return {"tokens": 0, "succeeded": 0, "pruned": 0}

        try:
            result = await self.push_channel.send_multicast(tokens, job.payload)
        except TransientDeliveryError:
            pruned = await self.devices.delete_tokens(tokens, user_id=user_id)
            logger.warning(
                f"Push transport failed for user {user_id}, removed {pruned} tokens"
            )
            raise

        failed_tokens = []
        for index in result.failed_indexes():
            error = PermanentTokenError(
                f"Token rejected: {result.responses[index].error_code}",
                token=tokens[index],
            )
            logger.info(f"{error.message} (user {user_id})")
            failed_tokens.append(tokens[index])

        if result.success_count == 0:
            pruned = await self.devices.delete_tokens(failed_tokens)
            logger.warning(
                f"All {len(tokens)} tokens failed for user {user_id}; "
                f"removed {pruned}, tracker untouched"
            )
            return {"tokens": len(tokens), "succeeded": 0, "pruned": pruned}

        await self.tracker.mark_sent(user_id, notification_type, sent_at)
        pruned = await self.devices.delete_tokens(failed_tokens)
        rejected = set(failed_tokens)
        surviving = [t for t in tokens if t not in rejected]
        await self.devices.touch_last_used(user_id, surviving, sent_at)

        logger.info(
            f"Delivered {notification_type.value} to user {user_id}: "
            f"{result.success_count}/{len(tokens)} tokens, {pruned} pruned"
        )
        return {
            "tokens": len(tokens),
            "succeeded": result.success_count,
            "pruned": pruned,
        }
