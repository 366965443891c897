from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from reminder_service.db.session import get_sync_session
from reminder_service.middlewares.gateway_auth import AuthState, require_admin
from reminder_service.schemas.notification_schemas import (
    BroadcastQueuedResponse,
    BroadcastRequest,
    DeviceResponse,
    NotificationPayload,
    TrackerResponse,
)
from reminder_service.services.notification_service_provider import (
    NotificationServiceProvider,
)
from reminder_service.utils.logging import get_logger
from reminder_service.utils.responses import ResponseBuilder

admin_notifications_router = APIRouter()
logger = get_logger()


def get_notification_services(
    request: Request,
    db: Annotated[Session, Depends(get_sync_session)],
) -> NotificationServiceProvider:
    return NotificationServiceProvider(
        db, request_id=getattr(request.state, "request_id", None)
    )


@admin_notifications_router.post(
    "/broadcast", status_code=status.HTTP_202_ACCEPTED
)
async def broadcast_notification(
    request: Request,
    body: BroadcastRequest,
    _: Annotated[AuthState, Depends(require_admin)],
    services: Annotated[NotificationServiceProvider, Depends(get_notification_services)],
):
    """
    Queue a custom message for every user with an active device token.

    Delivery happens in the background, one job per page of users.
    """
    payload = NotificationPayload(title=body.title, body=body.body, data=body.data)
    result = await services.broadcast.broadcast(payload)

    return ResponseBuilder.success(
        request=request,
        data=BroadcastQueuedResponse(**result).model_dump(mode="json", by_alias=True),
        message="Broadcast queued",
        status_code=status.HTTP_202_ACCEPTED,
    )


@admin_notifications_router.get("/stats")
async def get_device_statistics(
    request: Request,
    _: Annotated[AuthState, Depends(require_admin)],
    services: Annotated[NotificationServiceProvider, Depends(get_notification_services)],
):
    stats = await services.devices.get_statistics()
    return ResponseBuilder.success(
        request=request,
        data=stats.model_dump(mode="json", by_alias=True),
        message="Device statistics retrieved",
    )


@admin_notifications_router.get("/devices")
async def list_devices(
    request: Request,
    _: Annotated[AuthState, Depends(require_admin)],
    services: Annotated[NotificationServiceProvider, Depends(get_notification_services)],
    user_id: Optional[int] = Query(default=None, alias="userId", ge=1),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, alias="perPage", ge=1, le=100),
):
    devices, total = await services.devices.list_devices(user_id, page, per_page)

    return ResponseBuilder.paginated(
        request=request,
        data=[
            DeviceResponse.model_validate(d, from_attributes=True).model_dump(
                mode="json", by_alias=True
            )
            for d in devices
        ],
        page=page,
        per_page=per_page,
        total=total,
        message=f"Retrieved {len(devices)} devices",
    )


@admin_notifications_router.get("/trackers")
async def list_trackers(
    request: Request,
    _: Annotated[AuthState, Depends(require_admin)],
    services: Annotated[NotificationServiceProvider, Depends(get_notification_services)],
    user_id: Optional[int] = Query(default=None, alias="userId", ge=1),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, alias="perPage", ge=1, le=100),
):
    trackers, total = await services.tracker.list_trackers(user_id, page, per_page)

    return ResponseBuilder.paginated(
        request=request,
        data=[
            TrackerResponse.model_validate(t, from_attributes=True).model_dump(
                mode="json", by_alias=True
            )
            for t in trackers
        ],
        page=page,
        per_page=per_page,
        total=total,
        message=f"Retrieved {len(trackers)} notification trackers",
    )
