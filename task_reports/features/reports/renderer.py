"""Task report rendering: Jinja2 HTML and ReportLab PDF.

Both outputs are laid out from the same row context. The PDF is built
with ``invariant=1`` so identical inputs always produce identical bytes;
the generation timestamp only ever appears in the file name.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from io import BytesIO
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any
from xml.sax.saxutils import escape

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape
from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from task_reports.core.exceptions import ReportDataError, ReportRenderError

from .schemas import RenderedDocument, ReportKind

if TYPE_CHECKING:
    from .schemas import AggregateReport, ClientRecord, ReportPeriod, TaskRecord

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent.parent / "templates" / "reports"
TEMPLATE_NAME = "tasks_report.html"
FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

COLUMNS = ("Date", "Project", "Description", "Time Spent", "Creator Initials")

HEADER_GREEN = colors.HexColor("#009879")
ZEBRA_GREY = colors.HexColor("#f3f3f3")
RULE_GREY = colors.HexColor("#dddddd")


@dataclass(frozen=True, slots=True)
class ReportRow:
    """One rendered table row."""

    date: str
    project: str
    description: str
    time_spent: str
    initials: str


def build_rows(tasks: Sequence[TaskRecord], report: AggregateReport) -> list[ReportRow]:
    """Pair tasks with their formatted time.

    Raises:
        ReportDataError: If a task has no project or no creator.
    """
    if len(tasks) != len(report.per_task):
        msg = "Aggregate does not match the task list"
        raise ReportDataError(
            detail=msg,
            extra={"tasks": len(tasks), "aggregated": len(report.per_task)},
        )

    rows: list[ReportRow] = []
    for task, formatted in zip(tasks, report.per_task, strict=True):
        if task.project is None:
            raise ReportDataError(
                detail=f"Task {task.id} has no project",
                extra={"task_id": task.id},
            )
        if task.creator is None:
            raise ReportDataError(
                detail=f"Task {task.id} has no creator",
                extra={"task_id": task.id},
            )
        day = task.start_date or task.created_at.date()
        rows.append(
            ReportRow(
                date=day.isoformat(),
                project=task.project.title,
                description=task.title,
                time_spent=formatted,
                initials=task.creator.initials,
            )
        )
    return rows


class ReportRenderer:
    """Render task reports to HTML and A4 PDF.

    Example:
        renderer = ReportRenderer()
        document = renderer.render(tasks, aggregate(tasks), ReportKind.CLIENT, client=client)
        document.file_name  # "tasks_jane-doe_2025-01-06_08-00-00.pdf"
    """

    def __init__(
        self,
        template_dir: Path | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.template_dir = template_dir or TEMPLATE_DIR
        self.clock = clock or (lambda: datetime.now(UTC))
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(
        self,
        tasks: Sequence[TaskRecord],
        report: AggregateReport,
        kind: ReportKind,
        client: ClientRecord | None = None,
        period: ReportPeriod | None = None,
    ) -> RenderedDocument:
        """Render one report.

        Raises:
            ReportDataError: If a row is missing its project or creator, or a
                client report has no client.
            ReportRenderError: If the template or PDF layout fails.
        """
        if kind is ReportKind.CLIENT and client is None:
            raise ReportDataError(detail="Client reports require a client")

        rows = build_rows(tasks, report)
        context: dict[str, Any] = {
            "title": "Tasks Report",
            "kind": kind.value,
            "client_name": client.full_name if client else None,
            "period_label": period.label if period else None,
            "columns": COLUMNS,
            "rows": rows,
            "total_formatted": report.total_formatted,
        }

        html = self.render_html(context)
        pdf = self.render_pdf(context)
        file_name = self.file_name(kind, client)

        logger.debug(
            "Report rendered",
            extra={
                "kind": kind.value,
                "file_name": file_name,
                "rows": len(rows),
                "size_bytes": len(pdf),
            },
        )
        return RenderedDocument(
            kind=kind,
            file_name=file_name,
            pdf=pdf,
            html=html,
            total_formatted=report.total_formatted,
            client_id=client.id if client else None,
        )

    def file_name(self, kind: ReportKind, client: ClientRecord | None = None) -> str:
        scope = client.slug if client is not None else "all"
        return f"{kind.file_prefix}_{scope}_{self.clock().strftime(FILE_TIMESTAMP_FORMAT)}.pdf"

    def render_html(self, context: dict[str, Any]) -> str:
        try:
            return self.env.get_template(TEMPLATE_NAME).render(**context)
        except TemplateError as e:
            raise ReportRenderError(
                detail=f"Failed to render report template: {e}",
                extra={"template": TEMPLATE_NAME},
            ) from e

    def render_pdf(self, context: dict[str, Any]) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            invariant=1,
            title=context["title"],
            author="task-reports",
            leftMargin=15 * mm,
            rightMargin=15 * mm,
            topMargin=15 * mm,
            bottomMargin=15 * mm,
        )
        try:
            doc.build(self._story(context, doc.width))
        except Exception as e:
            raise ReportRenderError(
                detail=f"Failed to lay out report PDF: {e}",
                extra={"kind": context["kind"]},
            ) from e
        return buffer.getvalue()

    def _story(self, context: dict[str, Any], width: float) -> list[Any]:
        styles = getSampleStyleSheet()
        cell = ParagraphStyle("Cell", parent=styles["BodyText"], fontSize=9, leading=11, alignment=TA_LEFT)
        header = ParagraphStyle("HeaderCell", parent=cell, textColor=colors.white, fontName="Helvetica-Bold")
        client_style = ParagraphStyle("ClientName", parent=styles["Heading2"], fontSize=14, spaceAfter=4)

        story: list[Any] = [Paragraph(escape(context["title"]), styles["Title"])]
        if context["client_name"]:
            story.append(Paragraph(escape(context["client_name"]), client_style))
        if context["period_label"]:
            story.append(Paragraph(escape(context["period_label"]), styles["Italic"]))
        story.append(Spacer(1, 6 * mm))

        data: list[list[Any]] = [[Paragraph(escape(col), header) for col in context["columns"]]]
        for row in context["rows"]:
            data.append(
                [
                    Paragraph(escape(value), cell)
                    for value in (row.date, row.project, row.description, row.time_spent, row.initials)
                ]
            )
        data.append(
            [
                "",
                "",
                Paragraph("<b>Total Time Spent</b>", cell),
                Paragraph(f"<b>{escape(context['total_formatted'])}</b>", cell),
                "",
            ]
        )

        fractions = (0.14, 0.20, 0.36, 0.17, 0.13)
        table = Table(data, colWidths=[width * f for f in fractions], repeatRows=1)
        last = len(data) - 1
        commands: list[tuple[Any, ...]] = [
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_GREEN),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("TOPPADDING", (0, 0), (-1, -1), 6),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ("LEFTPADDING", (0, 0), (-1, -1), 6),
            ("RIGHTPADDING", (0, 0), (-1, -1), 6),
            ("ROWBACKGROUNDS", (0, 1), (-1, last), [colors.white, ZEBRA_GREY]),
            ("LINEBELOW", (0, last), (-1, last), 2, HEADER_GREEN),
        ]
        if last > 1:
            commands.append(("LINEBELOW", (0, 1), (-1, last - 1), 0.5, RULE_GREY))
        table.setStyle(TableStyle(commands))
        story.append(table)
        return story
