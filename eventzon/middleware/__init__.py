"""Middleware components for the EventZon ticketing platform."""

from .error_handler import ErrorHandlerMiddleware, eventzon_error_handler
from .logging import LoggingMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "LoggingMiddleware",
    "eventzon_error_handler",
]
