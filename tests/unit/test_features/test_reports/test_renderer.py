"""Unit tests for HTML/PDF report rendering."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, date, datetime

import pytest

from task_reports.core.exceptions import ReportDataError, ReportRenderError
from task_reports.features.reports.aggregator import aggregate
from task_reports.features.reports.renderer import COLUMNS, ReportRenderer, build_rows
from task_reports.features.reports.schemas import ClientRecord, ReportKind

FIXED_NOW = datetime(2025, 1, 13, 8, 0, 5, tzinfo=UTC)


@pytest.fixture
def renderer() -> ReportRenderer:
    return ReportRenderer(clock=lambda: FIXED_NOW)


@pytest.fixture
def tasks(make_task):
    return [
        make_task(title="Homepage mockups", time_spent="2:30", start_date=date(2025, 1, 6)),
        make_task(title="Fix <nav> & footer", time_spent="1:45"),
    ]


@pytest.mark.unit
class TestBuildRows:
    """Test suite for build_rows."""

    def test_rows_follow_task_order(self, tasks):
        rows = build_rows(tasks, aggregate(tasks))

        assert [r.description for r in rows] == ["Homepage mockups", "Fix <nav> & footer"]
        assert [r.time_spent for r in rows] == ["2 hrs 30 mins", "1 hrs 45 mins"]
        assert rows[0].project == "Website Redesign"
        assert rows[0].initials == "AL"

    def test_date_prefers_start_date(self, tasks):
        rows = build_rows(tasks, aggregate(tasks))

        assert rows[0].date == "2025-01-06"
        assert rows[1].date == "2025-01-07"

    def test_missing_project_fails_fast(self, make_task):
        tasks = [make_task(), make_task(id=42, project=None)]

        with pytest.raises(ReportDataError, match="Task 42 has no project"):
            build_rows(tasks, aggregate(tasks))

    def test_missing_creator_fails_fast(self, make_task):
        tasks = [make_task(id=43, creator=None)]

        with pytest.raises(ReportDataError, match="Task 43 has no creator"):
            build_rows(tasks, aggregate(tasks))

    def test_mismatched_aggregate_rejected(self, tasks):
        with pytest.raises(ReportDataError):
            build_rows(tasks, aggregate(tasks[:1]))


@pytest.mark.unit
class TestReportRenderer:
    """Test suite for ReportRenderer."""

    def test_client_report(self, renderer, tasks, client_record, period):
        document = renderer.render(tasks, aggregate(tasks), ReportKind.CLIENT, client_record, period)

        assert document.kind is ReportKind.CLIENT
        assert document.client_id == client_record.id
        assert document.file_name == "tasks_jane-doe_2025-01-13_08-00-05.pdf"
        assert document.total_formatted == "4 hrs 15 mins"
        assert document.content_type == "application/pdf"
        assert document.pdf.startswith(b"%PDF")
        assert document.size_bytes == len(document.pdf)

    def test_admin_report_file_name(self, renderer, tasks):
        document = renderer.render(tasks, aggregate(tasks), ReportKind.ADMIN)

        assert document.file_name == "weekly_tasks_all_2025-01-13_08-00-05.pdf"
        assert document.client_id is None

    def test_html_contains_columns_rows_and_total(self, renderer, tasks, client_record, period):
        document = renderer.render(tasks, aggregate(tasks), ReportKind.CLIENT, client_record, period)

        for column in COLUMNS:
            assert f"<th>{column}</th>" in document.html
        assert "Jane Doe" in document.html
        assert "2025-01-06 to 2025-01-12" in document.html
        assert "Total Time Spent" in document.html
        assert "4 hrs 15 mins" in document.html

    def test_html_is_escaped(self, renderer, tasks):
        document = renderer.render(tasks, aggregate(tasks), ReportKind.ADMIN)

        assert "Fix &lt;nav&gt; &amp; footer" in document.html
        assert "<nav>" not in document.html

    def test_admin_html_has_no_client_header(self, renderer, tasks):
        document = renderer.render(tasks, aggregate(tasks), ReportKind.ADMIN)

        assert 'class="client-name"' not in document.html

    def test_identical_inputs_give_identical_pdf_bytes(self, tasks, client_record, period):
        report = aggregate(tasks)

        first = ReportRenderer(clock=lambda: FIXED_NOW).render(tasks, report, ReportKind.CLIENT, client_record, period)
        second = ReportRenderer(clock=lambda: datetime(2030, 6, 1, tzinfo=UTC)).render(
            tasks, report, ReportKind.CLIENT, client_record, period
        )

        assert first.pdf == second.pdf
        assert first.file_name != second.file_name

    def test_different_inputs_give_different_pdf_bytes(self, renderer, tasks, client_record):
        other = replace(client_record, first_name="John")

        first = renderer.render(tasks, aggregate(tasks), ReportKind.CLIENT, client_record)
        second = renderer.render(tasks, aggregate(tasks), ReportKind.CLIENT, other)

        assert first.pdf != second.pdf

    def test_empty_task_list_renders_total_only(self, renderer):
        document = renderer.render([], aggregate([]), ReportKind.ADMIN)

        assert "0 hrs 0 mins" in document.html
        assert document.pdf.startswith(b"%PDF")

    def test_client_report_requires_client(self, renderer, tasks):
        with pytest.raises(ReportDataError):
            renderer.render(tasks, aggregate(tasks), ReportKind.CLIENT)

    def test_missing_relation_raises_before_rendering(self, renderer, make_task):
        tasks = [make_task(creator=None)]

        with pytest.raises(ReportDataError):
            renderer.render(tasks, aggregate(tasks), ReportKind.ADMIN)

    def test_broken_template_raises_render_error(self, tmp_path, tasks):
        (tmp_path / "tasks_report.html").write_text("{% for row in rows %}{{ row.date }", encoding="utf-8")
        renderer = ReportRenderer(template_dir=tmp_path, clock=lambda: FIXED_NOW)

        with pytest.raises(ReportRenderError):
            renderer.render(tasks, aggregate(tasks), ReportKind.ADMIN)

    def test_file_name_slug(self, renderer):
        client = ClientRecord(id=5, first_name="Acme", last_name="Widgets Ltd.", email="ops@acme.test")

        assert renderer.file_name(ReportKind.CLIENT, client) == "tasks_acme-widgets-ltd_2025-01-13_08-00-05.pdf"
