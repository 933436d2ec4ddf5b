"""
Centralized logging configuration with structured logging support.
"""
import json
import logging
import logging.config
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from shadowtest.core.config import Settings, settings

# Extra attributes that solver-step log calls attach via ``extra=``.
STRUCTURED_FIELDS = ("step_index", "solver_status", "objective", "duration_ms")


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

        for field_name in STRUCTURED_FIELDS:
            if hasattr(record, field_name):
                log_entry[field_name] = getattr(record, field_name)

        # Add source location for error-level logs
        if record.levelno >= logging.ERROR:
            log_entry["source"] = f"{record.pathname}:{record.lineno}"

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def build_logging_config(config: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Build the ``dictConfig`` mapping for the given settings.

    Args:
        config: Settings to read ``LOG_LEVEL`` and ``ENV`` from. Defaults to
            the module-level settings instance.

    Returns:
        A logging configuration dictionary accepted by
        ``logging.config.dictConfig``.
    """
    config = config or settings
    log_level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    is_production = config.ENV == "production"

    return {
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
            "shadowtest": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(config: Optional[Settings] = None) -> None:
    """
    Configure process-wide logging.

    Uses JSON output when ``ENV == "production"`` and a human-readable format
    otherwise. Call once at driver start-up; library modules only create
    loggers and never configure handlers themselves.
    """
    logging.config.dictConfig(build_logging_config(config))
