from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from reminder_service.config.notification_settings import notification_settings_provider
from reminder_service.config.settings import settings
from reminder_service.db.db import create_tables
from reminder_service.db.session import engine
from reminder_service.middlewares import RequestIDMiddleware
from reminder_service.routers import main_router
from reminder_service.utils.errors import setup_error_handlers
from reminder_service.utils.logging import get_logger

logger = get_logger()


@asynccontextmanager
async def lifespan(_: FastAPI):
    config = notification_settings_provider.get_notification_settings()
    if settings.ENVIRONMENT == "development":
        create_tables(engine, include_domain=True)

    logger.info(
        f"{settings.NAME} {settings.VERSION} starting ({settings.ENVIRONMENT}); "
        f"cooldown={config.resend_cooldown_hours}h page_size={config.pagination.page_size} "
        f"timezone={config.timezone}"
    )
    yield
    engine.dispose()
    logger.info(f"{settings.NAME} stopped")


def create_application() -> FastAPI:
    application = FastAPI(
        title=settings.NAME, version=settings.VERSION, lifespan=lifespan
    )

    setup_error_handlers(application)

    # Identity headers are set by the gateway in front of this service
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_HOSTS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-User-Id", "X-Admin-Token", "X-Request-ID"],
    )
    application.add_middleware(RequestIDMiddleware)

    application.include_router(main_router, prefix=settings.API_PREFIX)

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "reminder_service.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_config=None,
        log_level=None,
    )
