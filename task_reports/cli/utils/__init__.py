"""CLI utilities for running async operations and formatting output."""

from task_reports.cli.utils.async_runner import coro
from task_reports.cli.utils.formatters import document_line, error, header, info, success, warning

__all__ = [
    "coro",
    "document_line",
    "error",
    "header",
    "info",
    "success",
    "warning",
]
