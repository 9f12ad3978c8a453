"""
Error handling for the EventZon API: maps domain errors to JSON responses.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as SQLTimeoutError

from ..utils.exceptions import (
    EventZonError,
    ErrorCode,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
    BusinessLogicError,
)

logger = logging.getLogger(__name__)

STATUS_MAP = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.EVENT_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_BOOKING_STATE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_TICKET: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ALREADY_CHECKED_IN: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_REFERENCE: status.HTTP_409_CONFLICT,
    ErrorCode.ENCODING_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.EXTERNAL_SERVICE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.DELIVERY_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_status_code_for_error(exc: EventZonError) -> int:
    """Map error codes to HTTP status codes."""
    return STATUS_MAP.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_error_response(
    exc: EventZonError,
    error_id: str,
    status_code: Optional[int] = None,
    extra_headers: Optional[Dict[str, str]] = None,
    debug: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    content: Dict[str, Any] = {
        "error": exc.to_dict(),
        "error_id": error_id,
        "timestamp": _timestamp()
    }
    if debug:
        content["debug"] = debug

    headers = dict(extra_headers or {})
    if exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=status_code or get_status_code_for_error(exc),
        content=content,
        headers=headers
    )


def log_domain_error(request: Request, exc: EventZonError, error_id: str) -> None:
    extra = {
        "error_id": error_id,
        "error_code": exc.error_code.value,
        "method": request.method,
        "path": request.url.path,
        "details": exc.details,
    }
    if isinstance(exc, (ValidationError, NotFoundError, BusinessLogicError)):
        logger.warning(f"Client error [{error_id}]: {exc.message}", extra=extra)
    else:
        logger.error(f"System error [{error_id}]: {exc.message}", extra=extra)


async def eventzon_error_handler(request: Request, exc: EventZonError) -> JSONResponse:
    """Exception handler registered on the app for domain errors raised by routes."""
    error_id = str(uuid4())
    log_domain_error(request, exc, error_id)
    return build_error_response(exc, error_id)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence for errors that escape the route handlers."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc, str(uuid4()))

    def _handle_exception(self, request: Request, exc: Exception, error_id: str) -> JSONResponse:
        if isinstance(exc, EventZonError):
            log_domain_error(request, exc, error_id)
            return build_error_response(exc, error_id)

        if isinstance(exc, IntegrityError):
            logger.warning(f"Integrity error [{error_id}]: {exc.orig}")
            return build_error_response(
                ValidationError("Data integrity constraint violation"),
                error_id,
                status_code=status.HTTP_409_CONFLICT
            )

        if isinstance(exc, (OperationalError, SQLTimeoutError)):
            logger.error(f"Database error [{error_id}]: {exc}")
            return build_error_response(
                ExternalServiceError("database", "Database service temporarily unavailable"),
                error_id,
                extra_headers={"Retry-After": "30"}
            )

        logger.error(
            f"Unexpected error [{error_id}]: {exc}",
            extra={"error_id": error_id, "error_type": type(exc).__name__},
            exc_info=True
        )
        debug = None
        if self.debug:
            debug = {"exception": str(exc), "traceback": traceback.format_exc()}
        return build_error_response(
            EventZonError("An unexpected error occurred"),
            error_id,
            debug=debug
        )
