"""Context propagation for structured logging.

Report runs bind identifiers such as ``run_id``, ``client_id`` or
``delivery_id`` once; every record logged inside that asyncio task then
carries them without passing ``extra=`` around.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

# Each asyncio task gets its own copy
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the logging context of the current task.

    Example:
        ```python
        set_log_context(run_id=run.run_id, kind="client")
        logger.info("Generating reports")  # includes run_id and kind
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Drop every field from the current logging context."""
    _log_context.set({})


def remove_from_log_context(*keys: str) -> None:
    """Remove specific keys from the logging context."""
    current = _log_context.get().copy()
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


class ContextInjectingFilter(logging.Filter):
    """Copy the contextvars log context onto every LogRecord.

    Installed on the root queue handler so records from every logger pass through it.
    Existing record attributes are never overwritten.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ContextBoundLogger(logging.LoggerAdapter):
    """Logger adapter with permanently bound fields.

    Example:
        ```python
        log = ContextBoundLogger(logger, delivery_id=task.id)
        log.bind(attempt=2).warning("Send failed")
        ```
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        super().__init__(logger, context)

    def bind(self, **context: Any) -> ContextBoundLogger:
        """Return a new adapter with additional bound fields."""
        return ContextBoundLogger(self.logger, **{**self.extra, **context})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        kwargs["extra"] = {**self.extra, **extra}
        return msg, kwargs


def get_logger(name: str, **context: Any) -> ContextBoundLogger:
    """Get a logger with bound context."""
    return ContextBoundLogger(logging.getLogger(name), **context)
