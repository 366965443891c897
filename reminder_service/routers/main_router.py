from fastapi import APIRouter, Request

from reminder_service.config.settings import settings
from reminder_service.routers.admin import admin_notifications_router
from reminder_service.routers.devices import devices_router
from reminder_service.utils.responses import ResponseBuilder

main_router = APIRouter()

main_router.include_router(
    devices_router, prefix="/notifications", tags=["Notifications"]
)
main_router.include_router(
    admin_notifications_router,
    prefix="/admin/notifications",
    tags=["Admin Notifications"],
)


@main_router.get("/health", tags=["Health"])
async def health_check(request: Request):
    return ResponseBuilder.success(
        request=request,
        data={"status": "healthy", "service": settings.NAME, "version": settings.VERSION},
        message="Service is running",
    )
