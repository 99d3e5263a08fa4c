"""Structured logging for the report pipeline.

Usage:
    from task_reports.infra.logging import setup_logging, set_log_context

    setup_logging()
    set_log_context(run_id="...")
"""

from __future__ import annotations

from .config import complete, configure_logging, setup_logging, shutdown
from .context import (
    ContextBoundLogger,
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    get_logger,
    remove_from_log_context,
    set_log_context,
)
from .formatters import JSONFormatter

__all__ = [
    "ContextBoundLogger",
    "ContextInjectingFilter",
    "JSONFormatter",
    "clear_log_context",
    "complete",
    "configure_logging",
    "get_log_context",
    "get_logger",
    "remove_from_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
