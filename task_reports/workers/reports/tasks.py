"""Report tasks executed by Taskiq workers.

- ``reports.deliver`` sends one ``DeliveryTask`` payload. A failed attempt
  re-kicks the same payload with a ``delay`` label; once attempts are
  exhausted the task raises ``PermanentDeliveryFailure`` so the result
  backend records it.
- ``reports.generate_client_weekly_reports`` and
  ``reports.generate_combined_weekly_report`` are the weekly triggers. With
  no arguments they cover last week; ``start``/``end`` take ISO 8601 strings.
"""

from __future__ import annotations

import logging
from typing import Any

from task_reports.core.exceptions import PermanentDeliveryFailure
from task_reports.core.settings import get_report_settings
from task_reports.features.reports.delivery import (
    BrokerDeliveryQueue,
    DeliveryTask,
    OutcomeKind,
    process_delivery,
)
from task_reports.features.reports.dependencies import (
    build_report_service,
    get_failed_delivery_log,
    get_transport,
)
from task_reports.features.reports.schemas import ReportPeriod
from task_reports.infra.logging import remove_from_log_context, set_log_context
from task_reports.infra.tasks.broker import broker

logger = logging.getLogger(__name__)


def _period(start: str | None, end: str | None) -> ReportPeriod | None:
    if start is None and end is None:
        return None
    if start is None or end is None:
        msg = "start and end must be given together"
        raise ValueError(msg)
    return ReportPeriod.parse(start, end, get_report_settings().tzinfo)


@broker.task(task_name="reports.deliver")
async def deliver_report(payload: dict[str, Any]) -> dict[str, Any]:
    """Make one delivery attempt for a serialized ``DeliveryTask``.

    Raises:
        PermanentDeliveryFailure: If this attempt was the last one allowed.
    """
    task = DeliveryTask.from_payload(payload)
    set_log_context(delivery_id=task.id, report_run_id=task.run_id)
    try:
        queue = BrokerDeliveryQueue(deliver_report)
        outcome = await process_delivery(
            task,
            get_transport(),
            get_failed_delivery_log(),
            queue.requeue,
        )
    finally:
        remove_from_log_context("delivery_id", "report_run_id")

    if outcome.kind is OutcomeKind.PERMANENT_FAILURE:
        raise PermanentDeliveryFailure(
            detail=(
                f"Delivery to {task.recipient} failed after "
                f"{outcome.task.attempts} attempts: {outcome.error}"
            ),
            extra=outcome.to_dict(),
        )
    return outcome.to_dict()


@broker.task(task_name="reports.generate_client_weekly_reports")
async def generate_client_weekly_reports(
    start: str | None = None,
    end: str | None = None,
) -> dict[str, Any]:
    """Build, queue and summarize one report per client.

    Scheduled: weekly, see ``REPORT_SCHEDULE_*``.
    """
    logger.info("Running generate_client_weekly_reports task")
    service = build_report_service(BrokerDeliveryQueue(deliver_report))
    try:
        result = await service.generate_client_reports(_period(start, end))
    except Exception:
        logger.exception("Client weekly reports failed")
        raise
    return result.to_dict()


@broker.task(task_name="reports.generate_combined_weekly_report")
async def generate_combined_weekly_report(
    start: str | None = None,
    end: str | None = None,
) -> dict[str, Any]:
    """Build, archive and queue the report covering every task.

    Scheduled: weekly, see ``REPORT_SCHEDULE_*``.
    """
    logger.info("Running generate_combined_weekly_report task")
    service = build_report_service(BrokerDeliveryQueue(deliver_report))
    try:
        result = await service.generate_combined_report(_period(start, end))
    except Exception:
        logger.exception("Combined weekly report failed")
        raise
    return result.to_dict()
