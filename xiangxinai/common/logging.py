"""Structured logging helpers for the guardrails clients and CLI."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional


_RESERVED_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
}


class JsonFormatter(logging.Formatter):
    """Render log records as JSON with consistent keys."""

    def format(self, record: logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Collect extra fields added via the `extra` kwarg.
        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_KEYS:
                continue
            base[key] = value

        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(base, default=str, ensure_ascii=False)


def configure_logging(level: int = logging.INFO) -> None:
    """Install the JSON formatter on the root logger once.

    Applications opt in; importing the library leaves logging untouched.
    """
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root.setLevel(level)
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return a library logger that propagates to the application's handlers."""
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger


def log_request(
    logger: logging.Logger,
    *,
    method: str,
    endpoint: str,
    attempt: int,
    **context: Any,
) -> None:
    """Emit a debug log for one dispatched HTTP attempt."""
    logger.debug(
        "guardrails_request",
        extra={"event": "guardrails_request", "method": method, "endpoint": endpoint, "attempt": attempt, **context},
    )


def log_error(
    logger: logging.Logger,
    message: str,
    *,
    endpoint: Optional[str] = None,
    error: Optional[BaseException] = None,
    **context: Any,
) -> None:
    """Emit an error log with optional exception and endpoint correlation."""
    logger.error(
        message,
        extra={"endpoint": endpoint, **context},
        exc_info=error if error else None,
    )
