import asyncio
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError

from reminder_service.celery import celery
from reminder_service.db.session import get_sync_session
from reminder_service.schemas.job_schemas import (
    BroadcastFanoutJob,
    BroadcastPageJob,
    decode_job_as,
)
from reminder_service.services.notification_service_provider import (
    NotificationServiceProvider,
)
from reminder_service.utils.logging import get_logger


@celery.task(bind=True, max_retries=3, default_retry_delay=2)
def broadcast_fanout_task(self, request_id: str, job: Dict[str, Any]):
    """Split an admin broadcast into one page job per page of active device owners."""
    return asyncio.run(_async_broadcast_fanout(request_id, job))


@celery.task(bind=True, max_retries=3, default_retry_delay=2)
def broadcast_page_task(self, request_id: str, job: Dict[str, Any]):
    """
    Queue the broadcast for each user of one page, honouring the broadcast cooldown.

    Database failures retry this page only, with the job's backoff policy.
    """
    logger = get_logger().bind(request_id=request_id)

    try:
        page = decode_job_as(job, BroadcastPageJob)
    except ValueError as e:
        logger.error(f"Rejected broadcast-page job: {e}")
        return {"success": False, "error": str(e), "request_id": request_id}

    try:
        return asyncio.run(_async_broadcast_page(request_id, page))
    except SQLAlchemyError as e:
        options = page.options
        retries = self.request.retries
        if retries + 1 >= options.attempts:
            logger.error(f"Broadcast page failed after {options.attempts} attempts: {e}")
            return {
                "success": False,
                "error": str(e),
                "user_count": len(page.user_ids),
                "request_id": request_id,
            }

        raise self.retry(
            exc=e,
            countdown=options.countdown_for(retries),
            max_retries=options.attempts - 1,
        )


async def _async_broadcast_fanout(request_id: str, job: Dict[str, Any]):
    logger = get_logger().bind(request_id=request_id)

    try:
        fanout = decode_job_as(job, BroadcastFanoutJob)
    except ValueError as e:
        logger.error(f"Rejected broadcast-fanout job: {e}")
        return {"success": False, "error": str(e), "request_id": request_id}

    for db_session in get_sync_session():
        try:
            provider = NotificationServiceProvider(db_session, request_id=request_id)
            pages = await provider.broadcast.dispatch_fanout(fanout.payload)

            return {
                "success": True,
                "pages_enqueued": pages,
                "request_id": request_id,
            }

        except Exception as e:
            logger.error(f"Broadcast fan-out task exception: {str(e)}")
            return {"success": False, "error": str(e), "request_id": request_id}


async def _async_broadcast_page(request_id: str, page: BroadcastPageJob):
    logger = get_logger().bind(request_id=request_id)

    for db_session in get_sync_session():
        try:
            provider = NotificationServiceProvider(db_session, request_id=request_id)
            counts = await provider.broadcast.process_page(page.user_ids, page.payload)

            return {"success": True, **counts, "request_id": request_id}

        except SQLAlchemyError:
            raise
        except Exception as e:
            logger.error(f"Broadcast page task exception: {str(e)}")
            return {
                "success": False,
                "error": str(e),
                "user_count": len(page.user_ids),
                "request_id": request_id,
            }
