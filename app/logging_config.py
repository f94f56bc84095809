"""
Structured JSON logging for admin operations.

Provides single-line JSON logs with a request/operation correlation ID, plus
a context manager that times archive, expiration and reset operations.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone

# Context variables for correlating log lines of one operation
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
operation_var: ContextVar[str | None] = ContextVar("operation", default=None)

# Extra record attributes copied into the JSON payload
EXTRA_FIELDS = (
    "event",
    "operation",
    "event_year",
    "duration_ms",
    "teams",
    "members",
    "payments",
    "checked",
    "updated",
    "expired",
    "data_hash",
)


# -----------------------------------------------------------------------------
# JSON Formatter
# -----------------------------------------------------------------------------


class JSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Output format:
    {"timestamp": "...", "level": "INFO", "message": "...", "trace_id": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        trace_id = trace_id_var.get()
        if trace_id:
            log_data["trace_id"] = trace_id

        operation = operation_var.get()
        if operation:
            log_data["operation"] = operation

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """
    Configure root logging for the API process or the CLI.

    Args:
        json_format: If True, use JSON format. If False, use human-readable format.
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# -----------------------------------------------------------------------------
# Context Managers
# -----------------------------------------------------------------------------


@contextmanager
def log_operation(operation: str, event_year: int | None = None, trace_id: str | None = None):
    """
    Context manager for operation-level logging.

    Logs start and end with duration. The yielded dict is merged into the
    completion record, so callers can attach result counters.

    Usage:
        with log_operation("archive_create", event_year=2024) as fields:
            archive = ...
            fields["teams"] = archive.total_teams
    """
    if trace_id:
        trace_id_var.set(trace_id)
    token = operation_var.set(operation)

    start_time = time.time()
    logger = logging.getLogger("app.operations")
    fields: dict = {}

    logger.info(
        f"Operation {operation} started",
        extra={"event": "operation_start", "event_year": event_year},
    )

    try:
        yield fields
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Operation {operation} completed",
            extra={
                "event": "operation_complete",
                "event_year": event_year,
                "duration_ms": duration_ms,
                **fields,
            },
        )
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(
            f"Operation {operation} failed: {e}",
            extra={
                "event": "operation_failed",
                "event_year": event_year,
                "duration_ms": duration_ms,
            },
        )
        raise
    finally:
        operation_var.reset(token)
