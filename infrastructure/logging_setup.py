"""Logging setup with correlation ID support.

Usage:
    logger = logging.getLogger(__name__)
    logger.info("Reservation created", extra={"room_id": str(room_id)})

The correlation ID is set per request by api.middleware.CorrelationIdMiddleware
and attached to every record by CorrelationIdFilter.
"""
import logging
import logging.config
import uuid
from contextvars import ContextVar
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

from infrastructure.config import Settings

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(correlation_id)s]: %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(correlation_id)s %(message)s"


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set the correlation ID for the current context, generating one if missing"""
    cid = correlation_id or str(uuid.uuid4())
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> Optional[str]:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Adds correlation_id to log records"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True


def build_logging_config(settings: Settings) -> dict:
    formatter = "json" if settings.LOG_JSON else "standard"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "correlation": {"()": CorrelationIdFilter},
        },
        "formatters": {
            "standard": {"format": TEXT_FORMAT},
            "json": {"()": JsonFormatter, "fmt": JSON_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "filters": ["correlation"],
            },
        },
        "root": {"level": settings.LOG_LEVEL.upper(), "handlers": ["console"]},
    }


def configure_logging(settings: Settings) -> None:
    """Install handlers and formatters for the application"""
    logging.config.dictConfig(build_logging_config(settings))
