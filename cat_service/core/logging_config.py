"""
Centralized logging configuration with structured logging support.
"""
import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from cat_service.core.config import settings
from cat_service.schemas.cat import serialize_standard_error

# Context variable for exam session correlation. Callers serving many attempts
# set it around each request so every log entry carries the session key.
session_id_context: ContextVar[Optional[str]] = ContextVar("session_id", default=None)


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for production logging.

    Produces structured log entries with consistent fields for log aggregation.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_entry: Dict[str, Any] = {
            "timestamp": timestamp.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        session_id = session_id_context.get() or getattr(record, "session_id", None)
        if session_id:
            log_entry["session_id"] = session_id

        # Extra structured fields passed via `extra=`
        for key in ("theta", "standard_error", "items_administered", "stop_reason"):
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)

        # Infinite SE (no estimate yet) is written as null
        if "standard_error" in log_entry:
            log_entry["standard_error"] = serialize_standard_error(
                log_entry["standard_error"]
            )

        # Add source location for error-level logs
        if record.levelno >= logging.ERROR:
            log_entry["source"] = f"{record.pathname}:{record.lineno}"

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: Optional[str] = None, env: Optional[str] = None) -> None:
    """
    Configure application-wide logging.

    Uses JSON output when running in production and a human-readable format
    otherwise. Arguments override the corresponding settings values.

    Args:
        level: Log level name (e.g. "DEBUG"). Defaults to settings.LOG_LEVEL.
        env: Environment name. Defaults to settings.ENV.
    """
    log_level_name = level or settings.LOG_LEVEL
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)

    is_production = (env or settings.ENV) == "production"

    logging_config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": JSONFormatter,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "json" if is_production else "default",
                "stream": sys.stdout,
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
        "loggers": {
            "cat_service": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(logging_config)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
