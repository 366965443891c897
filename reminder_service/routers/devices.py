from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from reminder_service.db.session import get_sync_session
from reminder_service.middlewares.gateway_auth import AuthState, get_current_user
from reminder_service.schemas.notification_schemas import (
    DeviceResponse,
    RegisterDeviceRequest,
)
from reminder_service.services.notifications.device_registry import (
    DeviceRegistryService,
)
from reminder_service.utils.errors import NotFoundError
from reminder_service.utils.logging import get_logger
from reminder_service.utils.responses import ResponseBuilder

devices_router = APIRouter()
logger = get_logger()


@devices_router.post("/devices", status_code=status.HTTP_201_CREATED)
async def register_device(
    request: Request,
    body: RegisterDeviceRequest,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_sync_session)],
):
    """
    Register (or refresh) a push token for the calling user.

    Re-registering an existing token reactivates it and updates its platform.
    """
    service = DeviceRegistryService(db)
    device = await service.register_device(
        user_id=current_user.user_id, token=body.token, platform=body.platform
    )

    return ResponseBuilder.success(
        request=request,
        data=DeviceResponse.model_validate(device, from_attributes=True).model_dump(
            mode="json", by_alias=True
        ),
        message="Device registered",
        status_code=status.HTTP_201_CREATED,
    )


@devices_router.delete("/devices/{token}")
async def remove_device(
    request: Request,
    token: str,
    current_user: Annotated[AuthState, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_sync_session)],
):
    """Unregister one of the calling user's push tokens."""
    service = DeviceRegistryService(db)
    removed = await service.remove_device(current_user.user_id, token)

    if not removed:
        raise NotFoundError("Device token not found", "DEVICE_NOT_FOUND")

    logger.info(f"Removed device token for user {current_user.user_id}")
    return ResponseBuilder.success(
        request=request, data={"removed": True}, message="Device removed"
    )
