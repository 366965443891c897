import asyncio
from typing import Any, Dict

from reminder_service.celery import celery
from reminder_service.db.session import get_sync_session
from reminder_service.schemas.job_schemas import ReminderBatchJob, decode_job_as
from reminder_service.services.notification_service_provider import (
    NotificationServiceProvider,
)
from reminder_service.utils.logging import get_logger


@celery.task(bind=True, max_retries=3, default_retry_delay=2)
def process_reminder_batch_task(self, request_id: str, job: Dict[str, Any]):
    """
    Celery task to evaluate one page of users for a reminder kind.

    Args:
        request_id: The request ID of the scheduling pass
        job: A reminder-batch job envelope
    """
    return asyncio.run(_async_process_reminder_batch(request_id, job))


async def _async_process_reminder_batch(request_id: str, job: Dict[str, Any]):
    logger = get_logger().bind(request_id=request_id)

    try:
        batch = decode_job_as(job, ReminderBatchJob)
    except ValueError as e:
        logger.error(f"Rejected reminder-batch job: {e}")
        return {"success": False, "error": str(e), "request_id": request_id}

    for db_session in get_sync_session():
        try:
            provider = NotificationServiceProvider(db_session, request_id=request_id)
            evaluator = provider.evaluator(batch.reminder_type)

            if not evaluator:
                return {
                    "success": False,
                    "error": f"No evaluator for reminder type: {batch.reminder_type.value}",
                    "request_id": request_id,
                }

            stats = await evaluator.execute(batch.user_ids, batch.as_of)

            return {
                "success": True,
                "stats": stats.model_dump(mode="json"),
                "request_id": request_id,
            }

        except Exception as e:
            logger.error(
                f"Reminder batch task exception for {batch.reminder_type.value}: {str(e)}"
            )
            return {
                "success": False,
                "error": str(e),
                "reminder_type": batch.reminder_type.value,
                "request_id": request_id,
            }
