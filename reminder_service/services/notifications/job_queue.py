import uuid
from datetime import datetime
from typing import Dict, List, Optional

from reminder_service.celery import celery
from reminder_service.db.models import NotificationType
from reminder_service.schemas.job_schemas import (
    BroadcastFanoutJob,
    BroadcastPageJob,
    JobOptions,
    PushDeliveryJob,
    ReminderBatchJob,
    encode_job,
)
from reminder_service.schemas.notification_schemas import NotificationPayload
from reminder_service.utils.context import get_request_id
from reminder_service.utils.logging import get_logger

logger = get_logger()

# Celery task name per job type
JOB_TASKS: Dict[str, str] = {
    "reminder-batch": "reminder_service.tasks.background.reminder_batch.process_reminder_batch_task",
    "push-delivery": "reminder_service.tasks.background.push_delivery.deliver_push_task",
    "broadcast-fanout": "reminder_service.tasks.background.broadcast.broadcast_fanout_task",
    "broadcast-page": "reminder_service.tasks.background.broadcast.broadcast_page_task",
}


class NotificationsQueueService:
    """Producer side of the notifications queue."""

    def __init__(self, options: Optional[JobOptions] = None, request_id: Optional[str] = None):
        self.options = options or JobOptions()
        self.request_id = request_id

    async def enqueue(self, job) -> str:
        """Publish one job envelope and return its task id."""
        task_name = JOB_TASKS[job.job_type]
        task_id = str(uuid.uuid4())
        celery.send_task(
            task_name,
            kwargs={
                "request_id": self.request_id or get_request_id() or task_id,
                "job": encode_job(job),
            },
            task_id=task_id,
        )
        logger.debug(f"Enqueued {job.job_type} job {task_id}")
        return task_id

    async def add_reminder_batch_job(
        self, reminder_type: NotificationType, user_ids: List[int], as_of: datetime
    ) -> str:
        return await self.enqueue(
            ReminderBatchJob(
                reminder_type=reminder_type,
                user_ids=user_ids,
                as_of=as_of,
                options=self.options,
            )
        )

    async def add_push_delivery_job(
        self,
        user_id: int,
        notification_type: NotificationType,
        payload: NotificationPayload,
    ) -> str:
        return await self.enqueue(
            PushDeliveryJob(
                user_id=user_id,
                notification_type=notification_type,
                payload=payload,
                options=self.options,
            )
        )

    async def add_broadcast_fanout_job(self, payload: NotificationPayload) -> str:
        return await self.enqueue(
            BroadcastFanoutJob(payload=payload, options=self.options)
        )

    async def add_broadcast_page_job(
        self, user_ids: List[int], payload: NotificationPayload
    ) -> str:
        return await self.enqueue(
            BroadcastPageJob(user_ids=user_ids, payload=payload, options=self.options)
        )
