"""
Structured logging configuration.

Provides JSON-formatted logs for hosts that ship engine logs to an aggregator,
and a plain text format for local development.
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

from progression.core.config import settings


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields if present
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


ENGINE_LOGGER = "progression"


def build_formatter() -> logging.Formatter:
    """JSON in production or when LOG_FORMAT is json, plain text otherwise."""
    if settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production":
        return JSONFormatter()
    return logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def setup_logging(stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Configure the engine's `progression` logger.

    The root logger and any handlers the host installed are left alone.
    Calling this again replaces the handler from the previous call, so there
    is never more than one engine handler. Engine records stop propagating to
    the root logger once the engine has its own handler.

    Args:
        stream: Where to write (defaults to stdout)

    Returns:
        The configured engine logger
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    engine_logger = logging.getLogger(ENGINE_LOGGER)
    engine_logger.setLevel(log_level)

    for handler in list(engine_logger.handlers):
        if getattr(handler, "_progression_handler", False):
            engine_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(build_formatter())
    console_handler._progression_handler = True
    engine_logger.addHandler(console_handler)
    engine_logger.propagate = False

    return engine_logger
