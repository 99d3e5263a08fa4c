"""Unit tests for logging configuration, formatters and context."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from logging.handlers import QueueHandler

import pytest

from task_reports.core.settings import LoggingSettings
from task_reports.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    configure_logging,
    get_log_context,
    get_logger,
    remove_from_log_context,
    set_log_context,
    setup_logging,
    shutdown,
)


def _record(msg: str = "Report queued", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="task_reports.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _clean_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.mark.unit
class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    def test_basic_fields(self):
        formatter = JSONFormatter(static={"service": "task-reports"})

        data = json.loads(formatter.format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "task_reports.test"
        assert data["message"] == "Report queued"
        assert data["service"] == "task-reports"
        assert data["timestamp"].endswith("Z")

    def test_extras_are_top_level(self):
        formatter = JSONFormatter()

        data = json.loads(formatter.format(_record(client_id=4, delivery_id="abc")))

        assert data["client_id"] == 4
        assert data["delivery_id"] == "abc"
        assert "msg" not in data
        assert "args" not in data

    def test_exception_is_single_line(self):
        formatter = JSONFormatter()
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()

        output = formatter.format(record)

        assert "\n" not in output
        assert "RuntimeError: boom" in json.loads(output)["exception"]

    def test_non_serializable_values_use_str(self):
        data = json.loads(JSONFormatter().format(_record(payload=object())))

        assert data["payload"].startswith("<object object")


@pytest.mark.unit
class TestLogContext:
    """Test suite for contextvars-based log context."""

    def test_set_and_remove(self):
        set_log_context(report_run_id="run-1", client_id=3)
        remove_from_log_context("client_id")

        assert get_log_context() == {"report_run_id": "run-1"}

    def test_filter_injects_without_overwriting(self):
        set_log_context(report_run_id="run-1", client_id=3)
        record = _record(client_id=9)

        assert ContextInjectingFilter().filter(record) is True
        assert record.report_run_id == "run-1"
        assert record.client_id == 9

    async def test_context_is_isolated_per_task(self):
        set_log_context(report_run_id="run-1")

        async def child() -> dict:
            set_log_context(client_id=5)
            return get_log_context()

        seen = await asyncio.create_task(child())

        assert seen == {"report_run_id": "run-1", "client_id": 5}
        assert get_log_context() == {"report_run_id": "run-1"}

    def test_bound_logger(self, caplog):
        caplog.set_level(logging.INFO, logger="task_reports.bound")

        get_logger("task_reports.bound", delivery_id="d-1").bind(attempt=2).info("Send failed")

        record = caplog.records[-1]
        assert record.delivery_id == "d-1"
        assert record.attempt == 2


@pytest.mark.unit
class TestConfigureLogging:
    """Test suite for configure_logging and setup_logging."""

    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers, level, filters = list(root.handlers), root.level, list(root.filters)
        shutdown()
        yield
        shutdown()
        root.handlers[:] = handlers
        root.filters[:] = filters
        root.setLevel(level)

    def test_installs_queue_handler_and_context_filter(self):
        configure_logging(log_level="DEBUG", json_logs=True, capture_warnings=False)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(h, QueueHandler) for h in root.handlers)
        queue_handler = next(h for h in root.handlers if isinstance(h, QueueHandler))
        assert any(isinstance(f, ContextInjectingFilter) for f in queue_handler.filters)

    def test_file_handler_writes_json_lines(self, tmp_path):
        log_file = tmp_path / "logs" / "reports.jsonl"
        configure_logging(
            log_level="INFO",
            file_path=log_file,
            console_enabled=False,
            capture_warnings=False,
        )
        set_log_context(report_run_id="run-7")

        logging.getLogger("task_reports.test").info("Combined report complete", extra={"documents": 1})
        shutdown()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        data = json.loads(line)
        assert data["message"] == "Combined report complete"
        assert data["report_run_id"] == "run-7"
        assert data["documents"] == 1
        assert data["service"] == "task-reports"

    def test_setup_logging_runs_once(self):
        settings = LoggingSettings(console_enabled=False, capture_warnings=False)

        setup_logging(settings)
        setup_logging(settings)

        queue_handlers = [h for h in logging.getLogger().handlers if isinstance(h, QueueHandler)]
        assert len(queue_handlers) == 1
