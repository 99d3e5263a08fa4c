"""Unit tests for ReportService report runs."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
import logging

import pytest

from task_reports.core.exceptions import ReportDataError
from task_reports.core.settings import EmailSettings, ReportSettings
from task_reports.features.reports.renderer import ReportRenderer
from task_reports.features.reports.schemas import ClientRecord, ReportKind, ReportPeriod
from task_reports.features.reports.service import ReportService
from task_reports.infra.email.templates import EmailTemplateRenderer
from task_reports.infra.logging import get_log_context
from task_reports.infra.storage import LocalStorageBackend

FIXED_NOW = datetime(2025, 1, 13, 8, 0, tzinfo=UTC)


class FakeDataSource:
    """In-memory TaskDataSource."""

    def __init__(self, clients, tasks_by_client=None, all_tasks=None, delays=None):
        self.clients = clients
        self.tasks_by_client = tasks_by_client or {}
        self.all_tasks = all_tasks or []
        self.delays = delays or {}
        self.calls = []

    async def list_tasks(self, period, client_id=None):
        self.calls.append((period, client_id))
        if client_id is None:
            return list(self.all_tasks)
        await asyncio.sleep(self.delays.get(client_id, 0))
        return list(self.tasks_by_client.get(client_id, []))

    async def list_clients(self):
        return list(self.clients)


class RecordingQueue:
    """DeliveryQueue that keeps enqueued tasks in order."""

    def __init__(self):
        self.tasks = []

    async def enqueue(self, task):
        self.tasks.append(task)
        return task.id


@pytest.fixture
def clients() -> list[ClientRecord]:
    return [
        ClientRecord(id=1, first_name="Jane", last_name="Doe", email="jane@example.com"),
        ClientRecord(id=2, first_name="Bob", last_name="Stone", email="bob@example.com"),
        ClientRecord(id=3, first_name="Idle", last_name="Co", email="idle@example.com"),
    ]


@pytest.fixture
def report_settings() -> ReportSettings:
    return ReportSettings(
        admin_email="office@example.com",
        signature_name="Pat Jones",
        delivery_max_attempts=5,
        delivery_retry_delay_seconds=45,
    )


@pytest.fixture
def queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def storage(tmp_path) -> LocalStorageBackend:
    return LocalStorageBackend(tmp_path)


@pytest.fixture
def make_service(queue, storage, report_settings):
    def _make(data_source, settings=None) -> ReportService:
        return ReportService(
            data_source=data_source,
            renderer=ReportRenderer(clock=lambda: FIXED_NOW),
            queue=queue,
            storage=storage,
            email_templates=EmailTemplateRenderer(EmailSettings()),
            settings=settings or report_settings,
            clock=lambda: FIXED_NOW,
        )

    return _make


@pytest.mark.unit
class TestGenerateClientReports:
    """Test suite for per-client report runs."""

    async def test_client_without_tasks_is_skipped(self, make_service, queue, clients, make_task, period):
        source = FakeDataSource(clients, {1: [make_task(time_spent="2:30")]})

        result = await make_service(source).generate_client_reports(period)

        assert result.skipped_clients == [2, 3]
        assert [t.client_id for t in queue.tasks if t.kind is ReportKind.CLIENT] == [1]

    async def test_client_email_content(self, make_service, queue, clients, make_task, period):
        tasks = [make_task(time_spent="2:30"), make_task(time_spent="1:45")]
        source = FakeDataSource(clients[:1], {1: tasks})

        await make_service(source).generate_client_reports(period)

        delivery = queue.tasks[0]
        assert delivery.recipient == "jane@example.com"
        assert delivery.subject == "Your Weekly Tasks Report"
        assert "Dear Jane," in delivery.body_html
        assert "Hours used so far / Hours booked: 4 hrs 15 mins" in delivery.body_html
        assert "Pat Jones" in delivery.body_html
        assert "Dear Jane," in delivery.body_text
        assert delivery.attachment_names == ["tasks_jane-doe_2025-01-13_08-00-00.pdf"]
        assert delivery.attachments[0].content.startswith(b"%PDF")

    async def test_delivery_policy_comes_from_settings(self, make_service, queue, clients, make_task, period):
        source = FakeDataSource(clients[:1], {1: [make_task()]})

        result = await make_service(source).generate_client_reports(period)

        for delivery in queue.tasks:
            assert delivery.max_attempts == 5
            assert delivery.retry_delay_seconds == 45
            assert delivery.attempts == 0
            assert delivery.run_id == result.run_id

    async def test_malformed_sibling_is_isolated(self, make_service, queue, clients, make_task, period):
        source = FakeDataSource(
            clients,
            {
                1: [make_task(time_spent="1:00")],
                2: [make_task(id=77, time_spent="abc")],
                3: [make_task(time_spent="0:30")],
            },
        )

        result = await make_service(source).generate_client_reports(period)

        assert set(result.failed_clients) == {2}
        assert "77" in result.failed_clients[2]
        client_ids = [t.client_id for t in queue.tasks if t.kind is ReportKind.CLIENT]
        assert client_ids == [1, 3]
        assert [d.client_id for d in result.documents] == [1, 3]

    async def test_missing_relation_fails_only_that_client(self, make_service, clients, make_task, period):
        source = FakeDataSource(
            clients[:2],
            {1: [make_task()], 2: [make_task(project=None)]},
        )

        result = await make_service(source).generate_client_reports(period)

        assert list(result.failed_clients) == [2]
        assert len(result.documents) == 1

    async def test_client_without_email_fails(self, make_service, make_task, period):
        client = ClientRecord(id=9, first_name="No", last_name="Mail", email="")
        source = FakeDataSource([client], {9: [make_task()]})

        result = await make_service(source).generate_client_reports(period)

        assert 9 in result.failed_clients
        assert result.documents == []

    async def test_invalid_email_does_not_stop_other_clients(self, make_service, queue, make_task, period):
        bad = ClientRecord(id=1, first_name="Bad", last_name="Address", email="not-an-email")
        good = ClientRecord(id=2, first_name="Good", last_name="Address", email="good@example.com")
        source = FakeDataSource([bad, good], {1: [make_task()], 2: [make_task()]})

        result = await make_service(source).generate_client_reports(period)

        assert list(result.failed_clients) == [1]
        assert [d.client_id for d in result.documents] == [2]
        client_tasks = [t for t in queue.tasks if t.kind is ReportKind.CLIENT]
        assert [t.recipient for t in client_tasks] == ["good@example.com"]
        assert queue.tasks[-1].kind is ReportKind.ADMIN

    async def test_enqueue_error_is_isolated(self, make_service, queue, clients, make_task, period, caplog):
        original_enqueue = queue.enqueue

        async def flaky_enqueue(task):
            if task.client_id == 1:
                raise ConnectionError("broker unavailable")
            return await original_enqueue(task)

        queue.enqueue = flaky_enqueue
        source = FakeDataSource(clients[:2], {1: [make_task()], 2: [make_task()]})

        result = await make_service(source).generate_client_reports(period)

        assert result.failed_clients == {1: "broker unavailable"}
        assert [d.client_id for d in result.documents] == [2]
        assert "Client report failed unexpectedly" in caplog.text

    async def test_admin_summary_is_last_with_every_document(self, make_service, queue, clients, make_task, period):
        source = FakeDataSource(clients, {1: [make_task()], 2: [make_task(time_spent="3:15")]})

        result = await make_service(source).generate_client_reports(period)

        summary = queue.tasks[-1]
        assert summary.kind is ReportKind.ADMIN
        assert summary.recipient == "office@example.com"
        assert summary.subject == "Weekly Tasks Report"
        assert "Good morning," in summary.body_html
        assert summary.attachment_names == [d.file_name for d in result.documents]
        assert len(summary.attachments) == 2
        assert result.enqueued == [t.id for t in queue.tasks]

    async def test_admin_summary_mentions_failed_clients(self, make_service, queue, clients, make_task, period):
        source = FakeDataSource(clients[:2], {1: [make_task()], 2: [make_task(time_spent="bad")]})

        await make_service(source).generate_client_reports(period)

        assert "could not be produced for 1 client(s)" in queue.tasks[-1].body_html

    async def test_no_admin_email_skips_summary(self, make_service, queue, clients, make_task, period, caplog):
        caplog.set_level(logging.WARNING)
        source = FakeDataSource(clients[:1], {1: [make_task()]})

        await make_service(source, ReportSettings(admin_email=None)).generate_client_reports(period)

        assert [t.kind for t in queue.tasks] == [ReportKind.CLIENT]
        assert any("admin summary not sent" in r.getMessage() for r in caplog.records)

    async def test_no_documents_no_summary(self, make_service, queue, clients, period):
        result = await make_service(FakeDataSource(clients)).generate_client_reports(period)

        assert queue.tasks == []
        assert result.documents == []
        assert result.skipped_clients == [1, 2, 3]

    async def test_documents_keep_client_order_when_parallel(
        self, make_service, queue, clients, make_task, period, report_settings
    ):
        settings = report_settings.model_copy(update={"max_concurrency": 3})
        source = FakeDataSource(
            clients,
            {1: [make_task()], 2: [make_task()], 3: [make_task()]},
            delays={1: 0.03, 2: 0.01, 3: 0},
        )

        result = await make_service(source, settings).generate_client_reports(period)

        assert [d.client_id for d in result.documents] == [1, 2, 3]
        assert queue.tasks[-1].kind is ReportKind.ADMIN

    async def test_default_period_is_last_week(self, make_service, clients):
        source = FakeDataSource(clients[:1])

        result = await make_service(source).generate_client_reports()

        assert result.period == ReportPeriod(
            start=datetime(2025, 1, 6, tzinfo=UTC),
            end=datetime(2025, 1, 13, tzinfo=UTC),
        )
        assert source.calls[0][0] == result.period

    async def test_log_context_is_cleared_after_run(self, make_service, clients, period):
        await make_service(FakeDataSource(clients[:1])).generate_client_reports(period)

        assert "report_run_id" not in get_log_context()


@pytest.mark.unit
class TestGenerateCombinedReport:
    """Test suite for the combined report run."""

    async def test_archived_under_backups_and_sent_to_admin(
        self, make_service, queue, storage, tmp_path, make_task, period
    ):
        source = FakeDataSource([], all_tasks=[make_task(time_spent="2:30"), make_task(time_spent="1:45")])

        result = await make_service(source).generate_combined_report(period)

        expected = "backups/weekly_tasks_all_2025-01-13_08-00-00.pdf"
        assert result.archive_path == expected
        assert await storage.list("backups") == [expected]
        assert (tmp_path / expected).read_bytes() == result.documents[0].pdf

        (delivery,) = queue.tasks
        assert delivery.recipient == "office@example.com"
        assert delivery.subject == "Weekly Task Report"
        assert "Please find attached the backup weekly task report." in delivery.body_html
        assert delivery.attachment_names == ["weekly_tasks_all_2025-01-13_08-00-00.pdf"]
        assert source.calls == [(period, None)]

    async def test_empty_period_is_a_no_op(self, make_service, queue, storage, period, caplog):
        caplog.set_level(logging.INFO)

        result = await make_service(FakeDataSource([])).generate_combined_report(period)

        assert result.documents == []
        assert result.archive_path is None
        assert queue.tasks == []
        assert await storage.list() == []
        assert any("No tasks found for the specified date range" in r.getMessage() for r in caplog.records)

    async def test_malformed_task_propagates(self, make_service, queue, storage, make_task, period):
        source = FakeDataSource([], all_tasks=[make_task(time_spent="1:00"), make_task(time_spent="1:75")])

        with pytest.raises(ReportDataError):
            await make_service(source).generate_combined_report(period)

        assert queue.tasks == []
        assert await storage.list() == []

    async def test_archived_without_admin_email(self, make_service, queue, make_task, period):
        source = FakeDataSource([], all_tasks=[make_task()])

        result = await make_service(source, ReportSettings(admin_email=None)).generate_combined_report(period)

        assert result.archive_path is not None
        assert queue.tasks == []
