"""
Structured logging with JSON formatting and sync-run correlation.

This module provides:
- JSON log formatting so absorbed failures stay queryable
- Correlation IDs for HTTP requests and for each sync run
- Logger factory for consistent logger creation

Every place the engine swallows a failure logs with
``extra={"event": "<tag>", ...}``; the tag lands under ``extra.event`` in the
JSON output, which is what operators filter on to tell "no data" apart from
"fetch failed".
"""
import logging
import json
import sys
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator
from contextvars import ContextVar

# Request correlation ID (set by the HTTP middleware)
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Sync run ID (set once per sync_all() invocation)
sync_run_id_var: ContextVar[str] = ContextVar("sync_run_id", default="")

_STANDARD_RECORD_ATTRS = frozenset({
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
    "message",
    "asctime",
    "taskName",
})


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs logs as JSON objects with the following fields:
    - timestamp: ISO 8601 formatted timestamp
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - logger: Logger name
    - message: Log message
    - correlation_id: Request correlation ID (if available)
    - sync_run_id: Sync cycle ID (if available)
    - exception: Exception details (if an exception occurred)
    - extra: Any additional context from extra dict
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
            "sync_run_id": get_sync_run_id(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _STANDARD_RECORD_ATTRS
        }
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Colored console formatter for development.

    Human-readable output that still carries the event tag and run ID.
    """

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        level_color = self.COLORS.get(record.levelname, "")

        base_msg = f"{level_color}[{record.levelname}]{self.RESET} {record.name}: {record.getMessage()}"

        event = getattr(record, "event", None)
        if event:
            base_msg += f" | event={event}"

        run_id = get_sync_run_id()
        if run_id:
            base_msg += f" | sync_run_id={run_id}"

        correlation_id = get_correlation_id()
        if correlation_id:
            base_msg += f" | correlation_id={correlation_id}"

        if record.exc_info:
            base_msg += "\n" + self.formatException(record.exc_info)

        return base_msg


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    handler: logging.Handler | None = None,
) -> None:
    """
    Configure structured logging for the engine.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, use JSON formatter. If False, use colored console formatter.
        handler: Optional custom handler. If None, creates StreamHandler to stdout.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)

    handler.setFormatter(JSONFormatter() if json_output else ColoredFormatter())
    root_logger.addHandler(handler)

    # Reduce noise from third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__ from the calling module)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def set_correlation_id(correlation_id: str) -> Any:
    """
    Set the request correlation ID in the context.

    Returns:
        Token that can be used to reset the context variable
    """
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current request correlation ID (empty string if unset)."""
    return correlation_id_var.get()


def clear_correlation_id(token: Any) -> None:
    """Reset the request correlation ID using the token from set_correlation_id."""
    correlation_id_var.reset(token)


def get_sync_run_id() -> str:
    """Get the ID of the sync run currently executing (empty string if none)."""
    return sync_run_id_var.get()


@contextmanager
def sync_run_context(run_id: str | None = None) -> Iterator[str]:
    """
    Bind a sync run ID for every log line emitted inside the block.

    Args:
        run_id: Explicit run ID; a short random one is generated if omitted

    Yields:
        The bound run ID
    """
    run_id = run_id or uuid.uuid4().hex[:12]
    token = sync_run_id_var.set(run_id)
    try:
        yield run_id
    finally:
        sync_run_id_var.reset(token)
