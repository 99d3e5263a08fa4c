"""Logging formatters with trace correlation."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

# LogRecord attributes that never go into the JSON payload as extras
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "taskName",
    }
)

DEFAULT_FMT_KEYS = {
    "level": "levelname",
    "logger": "name",
    "message": "message",
}


class JSONFormatter(logging.Formatter):
    """JSON Lines formatter with UTC timestamps.

    Each record becomes a single JSON object on one line. Fields bound
    through ``set_log_context`` or passed via ``extra=`` are included as
    top-level keys, and the active OpenTelemetry span (if any) is added
    as ``trace_id``/``span_id``.

    Example output:
        ```json
        {"level": "INFO", "logger": "task_reports.features.reports.service", "message": "Client report queued", "timestamp": "2025-01-06T08:00:00.123Z", "service": "task-reports", "client_id": 4}
        ```
    """

    def __init__(
        self,
        fmt_keys: dict[str, str] | None = None,
        static: dict[str, Any] | None = None,
    ) -> None:
        """Initialize JSON formatter.

        Args:
            fmt_keys: Mapping of output keys to LogRecord attributes.
            static: Fields added to every record (e.g. ``{"service": "task-reports"}``).
        """
        super().__init__()
        self.fmt_keys = fmt_keys or dict(DEFAULT_FMT_KEYS)
        self.static = static or {}

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        data: dict[str, Any] = {
            key: getattr(record, attr, None) for key, attr in self.fmt_keys.items()
        }
        data["timestamp"] = (
            datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )

        span = trace.get_current_span()
        if span and span.get_span_context().is_valid:
            ctx = span.get_span_context()
            data["trace_id"] = format(ctx.trace_id, "032x")
            data["span_id"] = format(ctx.span_id, "016x")

        # Newlines are escaped so each record stays on one line
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info).replace("\n", "\\n")
        if record.stack_info:
            data["stack_trace"] = record.stack_info.replace("\n", "\\n")

        data.update(self.static)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in data:
                data[key] = value

        return json.dumps(data, ensure_ascii=False, default=str)
