"""
Request logging middleware: assigns a request id and logs each request/response pair.
"""

import logging
import time
from typing import Dict
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.logging_config import request_id_var

logger = logging.getLogger(__name__)

QUIET_PATHS = {"/health", "/", "/docs", "/redoc", "/openapi.json"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware tagging every log line of a request with its request id."""

    def __init__(self, app, log_requests: bool = True, log_responses: bool = True):
        super().__init__(app)
        self.log_requests = log_requests
        self.log_responses = log_responses

    async def dispatch(self, request: Request, call_next):
        # Reuse the caller's id when a proxy already assigned one
        request_id = request.headers.get("x-request-id") or str(uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        start_time = time.perf_counter()
        log = logger.debug if request.url.path in QUIET_PATHS else logger.info

        if self.log_requests:
            log(
                f"Request: {request.method} {request.url.path}",
                extra=self._request_info(request)
            )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Unhandled exception: {request.method} {request.url.path} - {type(exc).__name__}",
                extra={"duration": time.perf_counter() - start_time},
                exc_info=True
            )
            raise
        finally:
            request_id_var.reset(token)

        process_time = time.perf_counter() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        if self.log_responses:
            if response.status_code >= 500:
                log = logger.error
            elif response.status_code >= 400:
                log = logger.warning
            log(
                f"Response: {response.status_code} for {request.method} {request.url.path} "
                f"in {process_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "status_code": response.status_code,
                    "duration": process_time,
                }
            )

        return response

    def _request_info(self, request: Request) -> Dict[str, str]:
        return {
            "request_id": request.state.request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": self._get_client_ip(request),
            "user_agent": request.headers.get("user-agent"),
        }

    @staticmethod
    def _get_client_ip(request: Request) -> str:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return request.client.host if request.client else "unknown"
