r"""Structured logging utilities for machine-readable log output.

This module provides utilities for structured logging with JSON
formatting and run identifiers. Every run executes inside its own
asyncio task and sets a run ID in a context variable, so log records
emitted by the engine, the decider or the wrapped operation can be
grouped per run.

The structured logging system is opt-in and can be enabled by configuring
Python's logging system to use the provided formatter.

Example:
    Enable structured logging for nthchance:

    ```python
    import logging
    from nthchance.utils.structured_logging import StructuredFormatter

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger("nthchance")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    ```
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "clear_run_id",
    "get_run_id",
    "log_structured",
    "set_run_id",
]

import contextvars
import json
import logging
import time
from typing import Any

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "nthchance_run_id", default=None
)

_RESERVED_ATTRS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "sinfo",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


def get_run_id() -> str | None:
    """Get the ID of the run executing in the current context.

    Returns:
        The run ID, or None outside of a run.

    Example:
        ```pycon
        >>> from nthchance.utils.structured_logging import get_run_id, set_run_id
        >>> set_run_id("run-123")
        >>> get_run_id()
        'run-123'

        ```
    """
    return _run_id.get()


def set_run_id(run_id: str) -> None:
    """Set the run ID for the current context.

    Args:
        run_id: The run ID to set.
    """
    _run_id.set(run_id)


def clear_run_id() -> None:
    """Clear the run ID for the current context."""
    _run_id.set(None)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Standard fields in the JSON output:
        - timestamp: ISO 8601 timestamp
        - level: Log level name
        - logger: Logger name
        - message: Log message
        - run_id: ID of the current run, if any
        - module, function, line: Origin of the log record

    Any additional fields added via the ``extra`` parameter in logging
    calls are included in the JSON output.

    Example:
        ```pycon
        >>> import logging
        >>> from io import StringIO
        >>> from nthchance.utils.structured_logging import StructuredFormatter
        >>> stream = StringIO()
        >>> handler = logging.StreamHandler(stream)
        >>> handler.setFormatter(StructuredFormatter())
        >>> logger = logging.getLogger("test_logger")
        >>> logger.addHandler(handler)
        >>> logger.setLevel(logging.INFO)
        >>> logger.info("Attempt failed", extra={"attempt": 2})
        >>> '"attempt": 2' in stream.getvalue()
        True

        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        run_id = get_run_id()
        if run_id is not None:
            log_data["run_id"] = run_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=repr)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: ARG002
        """Format timestamp as ISO 8601 with millisecond precision."""
        return (
            time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created))
            + f".{int(record.msecs):03d}Z"
        )


def log_structured(
    logger: logging.Logger,
    level: int,
    message: str,
    **extra: Any,
) -> None:
    """Log a message with structured data.

    The extra fields are included in the JSON output when using
    ``StructuredFormatter``.

    Args:
        logger: Logger to use.
        level: Log level (e.g., logging.DEBUG).
        message: Log message.
        **extra: Additional structured fields to include in the log.
    """
    if logger.isEnabledFor(level):
        logger.log(level, message, extra=extra)
