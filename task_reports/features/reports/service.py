"""Weekly report runs.

``ReportService`` wires the pipeline together: data source, aggregator,
renderer, archive storage and delivery queue. Every collaborator is
passed in; only the worker and CLI entrypoints read settings.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING
import uuid

from task_reports.core.exceptions import ReportDataError, ReportingError
from task_reports.infra.logging import remove_from_log_context, set_log_context

from .aggregator import aggregate
from .delivery import DeliveryAttachment, DeliveryTask
from .schemas import (
    ClientRecord,
    RenderedDocument,
    ReportKind,
    ReportPeriod,
    ReportRunResult,
)

if TYPE_CHECKING:
    from task_reports.core.settings.reports import ReportSettings
    from task_reports.infra.email.templates import EmailTemplateRenderer
    from task_reports.infra.storage.protocol import StorageBackend

    from .delivery import DeliveryQueue
    from .renderer import ReportRenderer
    from .repository import TaskDataSource

logger = logging.getLogger(__name__)


class ReportService:
    """Generate, archive and queue weekly task reports.

    Example:
        service = ReportService(
            data_source=SqlAlchemyTaskRepository(session_factory),
            renderer=ReportRenderer(),
            queue=queue,
            storage=storage,
            email_templates=EmailTemplateRenderer(email_settings),
            settings=report_settings,
        )
        result = await service.generate_client_reports()
    """

    def __init__(
        self,
        *,
        data_source: TaskDataSource,
        renderer: ReportRenderer,
        queue: DeliveryQueue,
        storage: StorageBackend,
        email_templates: EmailTemplateRenderer,
        settings: ReportSettings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.data_source = data_source
        self.renderer = renderer
        self.queue = queue
        self.storage = storage
        self.email_templates = email_templates
        self.settings = settings
        self.clock = clock or (lambda: datetime.now(UTC))

    def default_period(self) -> ReportPeriod:
        """Last full Monday-to-Monday week in the configured timezone."""
        return ReportPeriod.last_week(self.clock(), self.settings.tzinfo)

    # ------------------------------------------------------------------
    # Per-client reports
    # ------------------------------------------------------------------

    async def generate_client_reports(self, period: ReportPeriod | None = None) -> ReportRunResult:
        """Build and queue one report per client, then the admin summary.

        Clients without tasks in the period are skipped. A client whose data
        or rendering fails is recorded in ``failed_clients``; the others go
        out regardless, and the admin summary carries every document that
        was produced.
        """
        period = period or self.default_period()
        result = ReportRunResult(run_id=uuid.uuid4().hex, kind=ReportKind.CLIENT, period=period)
        set_log_context(report_run_id=result.run_id, report_kind=result.kind.value)

        try:
            clients = await self.data_source.list_clients()
            logger.info(
                "Generating client reports",
                extra={"clients": len(clients), "period": period.label},
            )

            semaphore = asyncio.Semaphore(self.settings.max_concurrency)
            documents: dict[int, RenderedDocument] = {}

            async def _run(client: ClientRecord) -> None:
                async with semaphore:
                    set_log_context(client_id=client.id)
                    try:
                        document = await self._build_client_report(client, period, result)
                    except ReportingError as e:
                        result.failed_clients[client.id] = e.detail
                        logger.warning(
                            "Client report failed",
                            extra={"client_id": client.id, **e.to_dict()},
                        )
                        return
                    except Exception as e:
                        # One client's failure never cancels the rest of the run
                        result.failed_clients[client.id] = str(e) or type(e).__name__
                        logger.exception(
                            "Client report failed unexpectedly",
                            extra={"client_id": client.id, "error_type": type(e).__name__},
                        )
                        return
                    if document is not None:
                        documents[client.id] = document

            async with asyncio.TaskGroup() as group:
                for client in clients:
                    group.create_task(_run(client))

            # Client order, whatever order the builds finished in
            result.documents = [documents[c.id] for c in clients if c.id in documents]
            await self._queue_admin_summary(result)

            logger.info("Client reports complete", extra=result.to_dict())
            return result
        finally:
            remove_from_log_context("report_run_id", "report_kind")

    async def _build_client_report(
        self,
        client: ClientRecord,
        period: ReportPeriod,
        result: ReportRunResult,
    ) -> RenderedDocument | None:
        tasks = await self.data_source.list_tasks(period, client_id=client.id)
        if not tasks:
            result.skipped_clients.append(client.id)
            logger.info("No tasks for client, skipping", extra={"client_id": client.id})
            return None

        if not client.email:
            raise ReportDataError(
                detail=f"Client {client.id} has no email address",
                extra={"client_id": client.id},
            )

        report = aggregate(tasks)
        document = await asyncio.to_thread(
            self.renderer.render, tasks, report, ReportKind.CLIENT, client, period
        )

        html, text = self.email_templates.render(
            "client_report",
            client_first_name=client.first_name,
            total_formatted=document.total_formatted,
            period_label=period.label,
            **self._signature_context(),
        )
        delivery = self._new_delivery(
            recipient=client.email,
            subject=self.settings.client_subject,
            body_html=html,
            body_text=text,
            documents=[document],
            run_id=result.run_id,
            kind=ReportKind.CLIENT,
            client_id=client.id,
        )
        result.enqueued.append(await self.queue.enqueue(delivery))
        logger.info(
            "Client report queued",
            extra={"client_id": client.id, "file_name": document.file_name, "delivery_id": delivery.id},
        )
        return document

    async def _queue_admin_summary(self, result: ReportRunResult) -> None:
        if not result.documents:
            logger.info("No client documents produced, admin summary not sent")
            return
        if not self.settings.admin_email:
            logger.warning("REPORT_ADMIN_EMAIL not set, admin summary not sent")
            return

        html, text = self.email_templates.render(
            "admin_summary",
            documents=result.documents,
            failed_clients=result.failed_clients,
            period_label=result.period.label,
            **self._signature_context(),
        )
        delivery = self._new_delivery(
            recipient=self.settings.admin_email,
            subject=self.settings.admin_summary_subject,
            body_html=html,
            body_text=text,
            documents=result.documents,
            run_id=result.run_id,
            kind=ReportKind.ADMIN,
        )
        result.enqueued.append(await self.queue.enqueue(delivery))
        logger.info(
            "Admin summary queued",
            extra={"delivery_id": delivery.id, "attachments": len(result.documents)},
        )

    # ------------------------------------------------------------------
    # Combined report
    # ------------------------------------------------------------------

    async def generate_combined_report(self, period: ReportPeriod | None = None) -> ReportRunResult:
        """Build the all-clients report, archive it and queue it to the admin.

        Raises:
            ReportDataError: If any task in the period cannot be reported on.
            ReportRenderError: If the document cannot be rendered.
            StorageError: If the archive write fails.
        """
        period = period or self.default_period()
        result = ReportRunResult(run_id=uuid.uuid4().hex, kind=ReportKind.ADMIN, period=period)
        set_log_context(report_run_id=result.run_id, report_kind=result.kind.value)

        try:
            tasks = await self.data_source.list_tasks(period)
            if not tasks:
                logger.info("No tasks found for the specified date range", extra={"period": period.label})
                return result

            report = aggregate(tasks)
            document = await asyncio.to_thread(
                self.renderer.render, tasks, report, ReportKind.ADMIN, None, period
            )
            result.documents.append(document)

            stored = await self.storage.put(
                f"{self.settings.archive_prefix}/{document.file_name}",
                document.pdf,
                document.content_type,
            )
            result.archive_path = stored.path

            if self.settings.admin_email:
                html, text = self.email_templates.render(
                    "combined_report",
                    period_label=period.label,
                    total_formatted=document.total_formatted,
                )
                delivery = self._new_delivery(
                    recipient=self.settings.admin_email,
                    subject=self.settings.combined_subject,
                    body_html=html,
                    body_text=text,
                    documents=[document],
                    run_id=result.run_id,
                    kind=ReportKind.ADMIN,
                )
                result.enqueued.append(await self.queue.enqueue(delivery))
            else:
                logger.warning("REPORT_ADMIN_EMAIL not set, combined report archived only")

            logger.info("Combined report complete", extra=result.to_dict())
            return result
        finally:
            remove_from_log_context("report_run_id", "report_kind")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _signature_context(self) -> dict[str, object]:
        return {
            "signature_name": self.settings.signature_name,
            "signature_title": self.settings.signature_title,
            "signature_lines": self.settings.signature_lines,
        }

    def _new_delivery(
        self,
        *,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None,
        documents: list[RenderedDocument],
        run_id: str,
        kind: ReportKind,
        client_id: int | None = None,
    ) -> DeliveryTask:
        return DeliveryTask(
            recipient=recipient,
            subject=subject,
            body_html=body_html,
            body_text=body_text,
            attachments=tuple(
                DeliveryAttachment(
                    filename=doc.file_name,
                    content=doc.pdf,
                    content_type=doc.content_type,
                )
                for doc in documents
            ),
            max_attempts=self.settings.delivery_max_attempts,
            retry_delay_seconds=self.settings.delivery_retry_delay_seconds,
            run_id=run_id,
            kind=kind,
            client_id=client_id,
        )
