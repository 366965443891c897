import traceback
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logging import get_logger
from .responses import ResponseBuilder

logger = get_logger()


class ReminderServiceError(Exception):
    """Base class for the service's own errors: a message plus a stable error code."""

    default_message = "An error occurred"
    default_code = "SERVICE_ERROR"

    def __init__(self, message: Optional[str] = None, error_code: Optional[str] = None):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_code
        super().__init__(self.message)


# Raised at the HTTP boundary
class AuthenticationError(ReminderServiceError):
    default_message = "Authentication failed"
    default_code = "AUTH_ERROR"


class AuthorizationError(ReminderServiceError):
    default_message = "Access denied"
    default_code = "AUTHZ_ERROR"


class NotFoundError(ReminderServiceError):
    default_message = "Resource not found"
    default_code = "NOT_FOUND"


# Raised inside the notification pipeline
class TransientDeliveryError(ReminderServiceError):
    """The push channel call itself failed (transport, auth, quota); the job is retried."""

    default_code = "PUSH_TRANSPORT_ERROR"


class PermanentTokenError(ReminderServiceError):
    """A single device token was rejected by the push channel."""

    default_code = "PUSH_TOKEN_REJECTED"

    def __init__(
        self,
        message: str,
        token: Optional[str] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message, error_code)
        self.token = token


class DomainQueryFailure(ReminderServiceError):
    """A bulk domain signal query failed."""

    default_code = "DOMAIN_QUERY_FAILED"


# (status code, error_type meta) per HTTP-facing error
HTTP_ERRORS = {
    AuthenticationError: (status.HTTP_401_UNAUTHORIZED, "AUTHENTICATION_ERROR"),
    AuthorizationError: (status.HTTP_403_FORBIDDEN, "AUTHORIZATION_ERROR"),
    NotFoundError: (status.HTTP_404_NOT_FOUND, "NOT_FOUND_ERROR"),
}


def setup_error_handlers(app: FastAPI):
    """Register the JSON error envelope for every error the API can surface."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
        return ResponseBuilder.error(
            request=request,
            message=str(exc.detail),
            error_code="HTTP_ERROR",
            status_code=exc.status_code,
            meta={"http_status": exc.status_code},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        logger.warning(f"Request validation failed on {request.url.path}: {exc.errors()}")

        return ResponseBuilder.error(
            request=request,
            message="Request validation failed",
            errors=[
                {
                    "field": " -> ".join(str(loc) for loc in error["loc"]),
                    "message": error["msg"],
                    "type": error["type"],
                }
                for error in exc.errors()
            ],
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"SQLAlchemy Error: {str(exc)}")

        # Internal database errors stay in the logs
        return ResponseBuilder.error(
            request=request,
            message="A database error occurred",
            error_code="DATABASE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            meta={"error_type": "SQLALCHEMY_ERROR"},
        )

    async def service_error_handler(request: Request, exc: ReminderServiceError):
        status_code, error_type = HTTP_ERRORS[type(exc)]
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")

        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            error_code=exc.error_code,
            status_code=status_code,
            meta={"error_type": error_type},
        )

    for error_class in HTTP_ERRORS:
        app.add_exception_handler(error_class, service_error_handler)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other unhandled exceptions"""
        logger.error(f"Unhandled Exception: {str(exc)}")
        logger.error(f"Traceback: {traceback.format_exc()}")

        return ResponseBuilder.error(
            request=request,
            message="An internal server error occurred",
            error_code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            meta={"error_type": "INTERNAL_ERROR"},
        )
