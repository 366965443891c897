import asyncio

from reminder_service.celery import celery
from reminder_service.db.session import get_sync_session
from reminder_service.schemas.job_schemas import ScheduleReminderJob
from reminder_service.services.notification_service_provider import (
    NotificationServiceProvider,
)
from reminder_service.utils.datetime_utils import naive_utc_now
from reminder_service.utils.logging import get_logger


@celery.task(bind=True, max_retries=3, default_retry_delay=30)
def schedule_reminders_task(self, request_id: str, reminder_type: str):
    """
    Scheduled task that starts one reminder pass.

    Pages through users with an active device token and queues one
    reminder-batch job per page. Overlapping passes for the same kind are
    dropped by the scheduler guard.

    Args:
        request_id: The request ID for tracking purposes (provided by Celery Beat configuration)
        reminder_type: Notification type value of the reminder kind to run
    """
    return asyncio.run(_async_schedule_reminders(request_id, reminder_type))


@celery.task(bind=True, max_retries=3, default_retry_delay=30)
def process_all_reminders_task(self, request_id: str):
    """Run every reminder kind in one guarded pass."""
    return asyncio.run(_async_process_all_reminders(request_id))


async def _async_schedule_reminders(request_id: str, reminder_type: str):
    logger = get_logger().bind(request_id=request_id)

    for db_session in get_sync_session():
        try:
            job = ScheduleReminderJob(reminder_type=reminder_type)
            provider = NotificationServiceProvider(db_session, request_id=request_id)
            batches = await provider.scheduler.run_reminder_pass(
                job.reminder_type, naive_utc_now()
            )

            return {
                "success": True,
                "reminder_type": job.reminder_type.value,
                "batches_enqueued": batches,
                "request_id": request_id,
            }

        except Exception as e:
            logger.error(f"Reminder scheduling failed for {reminder_type}: {str(e)}")
            return {
                "success": False,
                "error": str(e),
                "reminder_type": reminder_type,
                "request_id": request_id,
            }


async def _async_process_all_reminders(request_id: str):
    logger = get_logger().bind(request_id=request_id)

    for db_session in get_sync_session():
        try:
            provider = NotificationServiceProvider(db_session, request_id=request_id)
            results = await provider.scheduler.process_all_reminders(naive_utc_now())

            return {
                "success": True,
                "batches_enqueued": results,
                "request_id": request_id,
            }

        except Exception as e:
            logger.error(f"Combined reminder pass failed: {str(e)}")
            return {"success": False, "error": str(e), "request_id": request_id}
