"""Structured logging configuration.

Workflow code attaches context (step id, prompt and content lengths, durations)
with ``log_fields()``. Both formatters render those fields: the JSON formatter
merges them into the record, the text formatter appends them as ``key=value``.
Fields whose value is None are dropped.
"""

import json
import logging
import sys
from typing import Any

from protoflow.utils.config import get_settings

_FIELDS_ATTR = "extra_fields"


def log_fields(**fields: Any) -> dict[str, Any]:
    """
    Build the ``extra`` mapping understood by both formatters.

    Example:
        >>> logger.info("Content saved", extra=log_fields(step_id="user_stories"))
    """
    return {_FIELDS_ATTR: fields}


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = getattr(record, _FIELDS_ATTR, None) or {}
    return {key: value for key, value in fields.items() if value is not None}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, tagged with app name and environment."""

    def format(self, record: logging.LogRecord) -> str:
        settings = get_settings()
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "app_name": settings.APP_NAME,
            "environment": settings.ENVIRONMENT,
            **_record_fields(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable lines: ``[time] LEVEL - logger - message key=value ...``."""

    def __init__(self) -> None:
        super().__init__(
            fmt="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        fields = _record_fields(record)
        if fields:
            line += " " + " ".join(f"{key}={value}" for key, value in fields.items())
        return line


_logging_configured = False


def _is_own_handler(handler: logging.Handler) -> bool:
    return isinstance(handler, logging.StreamHandler) and handler.stream == sys.stdout


def setup_logging(use_json: bool = False, force_reconfigure: bool = False) -> None:
    """
    Configure console logging at the LOG_LEVEL from settings.

    Repeated calls are no-ops unless ``force_reconfigure`` is set. Handlers
    installed by others (pytest's caplog, for instance) are left in place.

    Args:
        use_json: Emit JSON lines instead of the text format
        force_reconfigure: Replace the existing stdout handler
    """
    global _logging_configured

    if _logging_configured and not force_reconfigure:
        return

    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL)
    root = logging.getLogger()
    for handler in [h for h in root.handlers if _is_own_handler(h)]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter() if use_json else StandardFormatter())
    root.setLevel(level)
    root.addHandler(handler)
    _logging_configured = True

    logging.getLogger(__name__).debug(
        "Logging configured", extra=log_fields(level=settings.LOG_LEVEL, json=use_json)
    )


def get_logger(name: str) -> logging.Logger:
    """Return a named logger, configuring logging on first use."""
    if not _logging_configured:
        setup_logging()
    return logging.getLogger(name)


def reset_logging() -> None:
    """Drop all root handlers and forget the configuration. Used by tests."""
    global _logging_configured

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    _logging_configured = False
