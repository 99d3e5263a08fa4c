"""Logging configuration setup.

Configures the standard library logging tree for the CLI, the scheduler
and Taskiq workers:
- dictConfig for the root level
- QueueHandler + QueueListener so handlers never block the event loop
- ContextInjectingFilter for contextvars-based fields
- JSONL or human-readable text output
"""

from __future__ import annotations

import atexit
import logging
import logging.config
import time
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
from typing import TYPE_CHECKING, Any

from .context import ContextInjectingFilter
from .formatters import DEFAULT_FMT_KEYS, JSONFormatter

if TYPE_CHECKING:
    from task_reports.core.settings.logs import LoggingSettings

TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"

_log_queue: Queue[logging.LogRecord] | None = None
_listener: QueueListener | None = None
_queue_handler: QueueHandler | None = None
_LOGGING_INITIALIZED = False

logger = logging.getLogger(__name__)


def complete(max_wait: float = 5.0) -> None:
    """Block until queued log records have been written.

    Called from ``shutdown()``; useful before a CLI command exits so the
    last records of a report run are not lost.
    """
    if _log_queue is None or _listener is None:
        return

    start = time.monotonic()
    while not _log_queue.empty() and (time.monotonic() - start) < max_wait:
        time.sleep(0.01)
    time.sleep(0.05)


def shutdown() -> None:
    """Flush pending records and stop the QueueListener."""
    global _log_queue, _listener, _queue_handler, _LOGGING_INITIALIZED

    if _listener is not None:
        complete()
        _listener.stop()
        _listener = None

    if _queue_handler is not None:
        logging.getLogger().removeHandler(_queue_handler)
        _queue_handler = None

    _log_queue = None
    _LOGGING_INITIALIZED = False


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    service_name: str | None = None,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Configure logging once across entrypoints.

    Args:
        log_settings: Logging settings; loaded via get_logging_settings() if omitted.
        service_name: Static ``service`` field for JSON records; defaults to
            the application service name.
        force: Reconfigure even if logging was already initialized.
        **configure_kwargs: Explicit overrides for configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    from task_reports.core.settings import get_app_settings, get_logging_settings

    settings_obj = log_settings or get_logging_settings()
    log_config = {**settings_obj.to_logging_kwargs(), **configure_kwargs}
    log_config.setdefault("service_name", service_name or get_app_settings().service_name)

    if force:
        shutdown()

    configure_logging(**log_config)
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    console_level: str | None = None,
    file_level: str | None = None,
    file_path: str | Path | None = None,
    json_logs: bool = True,
    console_enabled: bool = True,
    include_context: bool = True,
    capture_warnings: bool = True,
    include_function_name: bool = False,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    service_name: str = "task-reports",
    **kwargs: Any,
) -> None:
    """Configure logging with dictConfig and the QueueHandler pattern.

    Args:
        log_level: Root logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        console_level: Console handler level. If None, uses log_level.
        file_level: File handler level. If None, uses log_level.
        file_path: Path to log file. None disables file logging.
        json_logs: Emit JSON Lines instead of text.
        console_enabled: Enable stderr logging.
        include_context: Install ContextInjectingFilter on the queue handler.
        capture_warnings: Forward Python warnings to logging.
        include_function_name: Include function name in records.
        file_max_bytes: Maximum log file size before rotation.
        file_backup_count: Number of rotated log files to keep.
        service_name: Static ``service`` field on JSON records.
        **kwargs: Ignored, logged at debug level.

    Example:
        from task_reports.core.settings import get_logging_settings
        configure_logging(**get_logging_settings().to_logging_kwargs())
    """
    if kwargs:
        logger.debug("Unused logging kwargs supplied: %s", ", ".join(sorted(kwargs)))

    if capture_warnings:
        logging.captureWarnings(True)

    path = Path(file_path) if file_path else None
    if path:
        path.parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "root": {
                "level": log_level.upper(),
                "handlers": [],
            },
        }
    )

    fmt_keys = dict(DEFAULT_FMT_KEYS)
    if include_function_name:
        fmt_keys["function"] = "funcName"

    _setup_queue_logging(
        include_context=include_context,
        console_enabled=console_enabled,
        console_level=console_level or log_level,
        file_path=path,
        file_level=file_level or log_level,
        file_max_bytes=file_max_bytes,
        file_backup_count=file_backup_count,
        formatter_factory=lambda: _build_formatter(
            json_logs=json_logs,
            fmt_keys=fmt_keys,
            service_name=service_name,
            include_function_name=include_function_name,
        ),
    )


def _build_formatter(
    *,
    json_logs: bool,
    fmt_keys: dict[str, str],
    service_name: str,
    include_function_name: bool,
) -> logging.Formatter:
    if json_logs:
        return JSONFormatter(fmt_keys=fmt_keys, static={"service": service_name})
    fmt = TEXT_FORMAT
    if include_function_name:
        fmt = "%(asctime)s - %(levelname)s - %(name)s - %(funcName)s - %(message)s"
    return logging.Formatter(fmt=fmt, datefmt=TEXT_DATEFMT)


def _setup_queue_logging(
    *,
    include_context: bool,
    console_enabled: bool,
    console_level: str,
    file_path: Path | None,
    file_level: str,
    file_max_bytes: int,
    file_backup_count: int,
    formatter_factory: Any,
) -> None:
    """Attach real handlers to a QueueListener and a QueueHandler to root."""
    global _log_queue, _listener, _queue_handler

    _log_queue = Queue()
    handlers: list[logging.Handler] = []

    if console_enabled:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(console_level.upper())
        console_handler.setFormatter(formatter_factory())
        handlers.append(console_handler)

    if file_path:
        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=file_max_bytes,
            backupCount=file_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level.upper())
        file_handler.setFormatter(formatter_factory())
        handlers.append(file_handler)

    if handlers:
        _listener = QueueListener(_log_queue, *handlers, respect_handler_level=True)
        _listener.start()
        atexit.register(shutdown)

    _queue_handler = QueueHandler(_log_queue)
    # Handler filters see records propagated from child loggers, logger filters do not
    if include_context:
        _queue_handler.addFilter(ContextInjectingFilter())
    logging.getLogger().addHandler(_queue_handler)
