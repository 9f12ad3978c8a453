"""
Logging configuration for the EventZon ticketing platform.

Everything goes through the standard ``logging`` module configured with
``dictConfig``. Records carry the current request id (set by the logging
middleware) and have attendee contact details masked unless
``log_sensitive_data`` is enabled.
"""

import json
import logging
import logging.config
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import get_settings

# Set per request by LoggingMiddleware, read by RequestIDFilter
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

_STANDARD_RECORD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "request_id"}


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    enable_json_logging: Optional[bool] = None
) -> None:
    """
    Configure application, web server, database and worker loggers.

    Args:
        log_level: Overrides ``settings.log_level``
        log_file: Optional rotating log file path
        enable_json_logging: Overrides ``settings.enable_json_logging``
    """
    settings = get_settings()
    level = (log_level or settings.log_level).upper()
    json_logs = settings.enable_json_logging if enable_json_logging is None else enable_json_logging
    formatter = "json" if json_logs else "detailed"
    handlers = ["console"]

    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": (
                    "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d "
                    "[%(request_id)s] %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S"
            },
            "json": {
                "()": "eventzon.utils.logging_config.JSONFormatter"
            }
        },
        "filters": {
            "request_id": {
                "()": "eventzon.utils.logging_config.RequestIDFilter"
            },
            "sensitive_data": {
                "()": "eventzon.utils.logging_config.SensitiveDataFilter",
                "enabled": not settings.log_sensitive_data
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": formatter,
                "stream": sys.stdout,
                "filters": ["request_id", "sensitive_data"]
            }
        },
        "loggers": {},
        "root": {"level": level}
    }

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": formatter,
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "filters": ["request_id", "sensitive_data"]
        }
        handlers.append("file")

    logger_levels = {
        "eventzon": level,
        "uvicorn": "INFO",
        "uvicorn.access": "INFO",
        "fastapi": "INFO",
        "celery": "INFO",
        "sqlalchemy.engine": "WARNING",
        "sqlalchemy.pool": "WARNING",
        "httpx": "WARNING",
    }
    for name, logger_level in logger_levels.items():
        config["loggers"][name] = {
            "level": logger_level,
            "handlers": list(handlers),
            "propagate": False
        }
    config["root"]["handlers"] = list(handlers)

    logging.config.dictConfig(config)

    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logging.getLogger("eventzon.exceptions").error(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback),
            extra={"exception_type": exc_type.__name__}
        )

    sys.excepthook = handle_exception


class RequestIDFilter(logging.Filter):
    """Attach the current request id to every record."""

    def filter(self, record):
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get()
        return True


class SensitiveDataFilter(logging.Filter):
    """Mask secrets, e-mail addresses and phone numbers in log records."""

    SENSITIVE_KEYS = {
        "password", "token", "secret", "authorization", "cookie",
        "smtp_password", "attendee_phone", "attendee_email", "email",
    }
    EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
    # Nine or more digits in single-space or dash groups, standing alone so
    # UUIDs, booking references and ticket numbers are left intact
    PHONE_PATTERN = re.compile(r"(?<![\w-])(?![0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-)(?:\+\d{1,3}[ -]?)?\d(?:[ -]?\d){8,}(?![\w-])")

    def __init__(self, enabled: bool = True):
        super().__init__()
        self.enabled = enabled

    def filter(self, record):
        if not self.enabled:
            return True

        if isinstance(record.msg, str):
            record.msg = self._sanitize_string(record.msg)

        for key, value in list(record.__dict__.items()):
            if key in _STANDARD_RECORD_KEYS:
                continue
            if key.lower() in self.SENSITIVE_KEYS:
                setattr(record, key, "***MASKED***")
            elif isinstance(value, (str, dict)):
                setattr(record, key, self._sanitize_data(value))

        return True

    def _sanitize_string(self, text: str) -> str:
        text = self.EMAIL_PATTERN.sub("***EMAIL***", text)
        return self.PHONE_PATTERN.sub("***PHONE***", text)

    def _sanitize_data(self, data):
        if isinstance(data, dict):
            return {
                key: "***MASKED***" if str(key).lower() in self.SENSITIVE_KEYS
                else self._sanitize_data(value)
                for key, value in data.items()
            }
        if isinstance(data, str):
            return self._sanitize_string(data)
        return data


class JSONFormatter(logging.Formatter):
    """One JSON object per line, extra fields nested under ``extra``."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "request_id": getattr(record, "request_id", None),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_KEYS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def log_business_event(event_type: str, user_id: Optional[str] = None, **details: Any):
    """Log booking lifecycle events (created, cancelled, checked in) for auditing."""
    logging.getLogger("eventzon.business").info(
        f"Business event: {event_type}",
        extra={
            "event_type": event_type,
            "business_event": True,
            "user_id": user_id,
            **details
        }
    )
