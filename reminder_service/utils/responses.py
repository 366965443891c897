from typing import Any, Dict, List, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from reminder_service.schemas.response_schemas import (
    ApiResponse,
    PaginationMeta,
    ResponseStatus,
)


def _envelope(request: Request, status_code: int, **fields) -> JSONResponse:
    response = ApiResponse(
        request_id=getattr(request.state, "request_id", None) or "app",
        path=str(request.url.path),
        **fields,
    )
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(exclude_none=True, by_alias=True),
    )


class ResponseBuilder:
    """Builds the standard JSON envelope for route handlers and error handlers"""

    @staticmethod
    def success(
        request: Request,
        data: Any = None,
        message: str = "Request successful",
        meta: Optional[Dict[str, Any]] = None,
        pagination: Optional[PaginationMeta] = None,
        status_code: int = status.HTTP_200_OK,
    ) -> JSONResponse:
        return _envelope(
            request,
            status_code,
            success=True,
            status=ResponseStatus.SUCCESS,
            message=message,
            data=data,
            meta=meta,
            pagination=pagination,
        )

    @staticmethod
    def error(
        request: Request,
        message: str = "An error occurred",
        errors: Optional[List[Dict[str, Any]]] = None,
        error_code: Optional[str] = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        meta: Optional[Dict[str, Any]] = None,
    ) -> JSONResponse:
        """`error_code` is exposed to clients as `meta.error_code`."""
        meta = dict(meta or {})
        if error_code:
            meta["error_code"] = error_code

        return _envelope(
            request,
            status_code,
            success=False,
            status=ResponseStatus.ERROR,
            message=message,
            meta=meta or None,
            errors=errors,
        )

    @staticmethod
    def paginated(
        request: Request,
        data: List[Any],
        page: int,
        per_page: int,
        total: int,
        message: str = "Data retrieved successfully",
    ) -> JSONResponse:
        return ResponseBuilder.success(
            request=request,
            data=data,
            message=message,
            pagination=PaginationMeta.from_counts(page, per_page, total),
        )
