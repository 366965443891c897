import asyncio
from typing import Any, Dict

from reminder_service.celery import celery
from reminder_service.db.session import get_sync_session
from reminder_service.schemas.job_schemas import PushDeliveryJob, decode_job_as
from reminder_service.services.notification_service_provider import (
    NotificationServiceProvider,
)
from reminder_service.utils.errors import TransientDeliveryError
from reminder_service.utils.logging import get_logger


@celery.task(bind=True, max_retries=3, default_retry_delay=2)
def deliver_push_task(self, request_id: str, job: Dict[str, Any]):
    """
    Celery task to push one notification to every active device of a user.

    Transport failures are retried with exponential backoff
    (`backoff_seconds * 2**retries`) until the job's `attempts` are used up.

    Args:
        request_id: The request ID of the pass or request that queued the job
        job: A push-delivery job envelope
    """
    logger = get_logger().bind(request_id=request_id)

    try:
        push_job = decode_job_as(job, PushDeliveryJob)
    except ValueError as e:
        logger.error(f"Rejected push-delivery job: {e}")
        return {"success": False, "error": str(e), "request_id": request_id}

    try:
        return asyncio.run(_async_deliver_push(request_id, push_job))
    except TransientDeliveryError as e:
        options = push_job.options
        retries = self.request.retries
        if retries + 1 >= options.attempts:
            logger.error(
                f"Push delivery to user {push_job.user_id} failed after "
                f"{options.attempts} attempts: {e.message}"
            )
            return {
                "success": False,
                "error": e.message,
                "user_id": push_job.user_id,
                "attempts": options.attempts,
                "request_id": request_id,
            }

        countdown = options.countdown_for(retries)
        logger.warning(
            f"Push delivery to user {push_job.user_id} failed, "
            f"retrying in {countdown}s (attempt {retries + 1}/{options.attempts})"
        )
        raise self.retry(exc=e, countdown=countdown, max_retries=options.attempts - 1)


async def _async_deliver_push(request_id: str, job: PushDeliveryJob):
    logger = get_logger().bind(request_id=request_id)

    for db_session in get_sync_session():
        provider = NotificationServiceProvider(db_session, request_id=request_id)
        try:
            outcome = await provider.delivery_worker().deliver(job)
        except TransientDeliveryError:
            raise
        except Exception as e:
            logger.error(
                f"Push delivery task exception for user {job.user_id}: {str(e)}"
            )
            return {
                "success": False,
                "error": str(e),
                "user_id": job.user_id,
                "request_id": request_id,
            }

        return {
            "success": True,
            "user_id": job.user_id,
            "notification_type": job.notification_type.value,
            **outcome,
            "request_id": request_id,
        }
