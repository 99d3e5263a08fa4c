"""Report commands.

Run the weekly triggers on demand and inspect failed deliveries:
- ``reports client``: per-client reports plus the admin summary
- ``reports combined``: the all-clients report, archived and mailed
- ``reports failed``: permanently failed deliveries

With RabbitMQ configured, deliveries are kicked to the Taskiq workers.
Otherwise they are sent from this process, retries included, before the
command exits.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import json
import sys
from typing import TYPE_CHECKING, Any

import click

from task_reports.cli.utils import coro, document_line, error, header, info, success, warning
from task_reports.core.exceptions import ReportingError
from task_reports.core.settings import get_rabbit_settings, get_report_settings
from task_reports.features.reports.delivery import (
    BrokerDeliveryQueue,
    DeliveryOutcome,
    InMemoryDeliveryQueue,
    OutcomeKind,
)
from task_reports.features.reports.dependencies import (
    build_report_service,
    get_failed_delivery_log,
    get_transport,
)
from task_reports.features.reports.schemas import ReportPeriod
from task_reports.infra.database import close_database

if TYPE_CHECKING:
    from task_reports.features.reports.schemas import ReportRunResult
    from task_reports.features.reports.service import ReportService

RunTrigger = Callable[["ReportService", ReportPeriod | None], Awaitable["ReportRunResult"]]

period_options = [
    click.option("--start", help="Period start (ISO 8601). Defaults to last Monday a week ago."),
    click.option("--end", help="Period end, exclusive (ISO 8601)."),
    click.option(
        "--format",
        "output_format",
        type=click.Choice(["text", "json"]),
        default="text",
        help="Output format",
    ),
]


def with_period_options(f: Callable[..., Any]) -> Callable[..., Any]:
    for option in reversed(period_options):
        f = option(f)
    return f


def resolve_period(start: str | None, end: str | None) -> ReportPeriod | None:
    """Parse ``--start/--end``; both or neither must be given."""
    if start is None and end is None:
        return None
    if start is None or end is None:
        msg = "--start and --end must be given together"
        raise click.BadParameter(msg)
    try:
        return ReportPeriod.parse(start, end, get_report_settings().tzinfo)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


async def run_trigger(
    trigger: RunTrigger,
    period: ReportPeriod | None,
) -> tuple[ReportRunResult, list[DeliveryOutcome]]:
    """Run ``trigger`` against a service wired for this process."""
    try:
        if get_rabbit_settings().is_configured:
            from task_reports.infra.tasks.broker import start_taskiq, stop_taskiq
            from task_reports.workers.reports.tasks import deliver_report

            await start_taskiq()
            try:
                service = build_report_service(BrokerDeliveryQueue(deliver_report))
                return await trigger(service, period), []
            finally:
                await stop_taskiq()

        queue = InMemoryDeliveryQueue(get_transport(), get_failed_delivery_log())
        service = build_report_service(queue)
        result = await trigger(service, period)
        return result, await queue.drain()
    finally:
        await close_database()


def _print_result(result: ReportRunResult, outcomes: list[DeliveryOutcome], output_format: str) -> None:
    if output_format == "json":
        payload = result.to_dict()
        payload["deliveries"] = [o.to_dict() for o in outcomes]
        click.echo(json.dumps(payload, indent=2))
        return

    info(f"Period: {result.period.label}")
    for document in result.documents:
        click.echo(document_line(document.file_name, document.total_formatted))
    if result.archive_path:
        info(f"Archived: {result.archive_path}")
    if result.skipped_clients:
        info(f"Skipped (no tasks): {', '.join(str(c) for c in result.skipped_clients)}")
    for client_id, reason in result.failed_clients.items():
        warning(f"Client {client_id} failed: {reason}")

    failed = [o for o in outcomes if o.kind is OutcomeKind.PERMANENT_FAILURE]
    for outcome in failed:
        error(f"Delivery to {outcome.task.recipient} failed: {outcome.error}")

    if not result.documents:
        info("No tasks found for the specified date range")
    success(f"{len(result.documents)} document(s), {len(result.enqueued)} delivery task(s) queued")


def _run_command(trigger: RunTrigger, start: str | None, end: str | None, output_format: str) -> None:
    period = resolve_period(start, end)
    try:
        result, outcomes = asyncio.run(run_trigger(trigger, period))
    except ReportingError as e:
        error(f"{e.title}: {e.detail}")
        sys.exit(1)
    _print_result(result, outcomes, output_format)
    if result.failed_clients or any(o.kind is OutcomeKind.PERMANENT_FAILURE for o in outcomes):
        sys.exit(1)


@click.group(name="reports")
def reports() -> None:
    """Weekly report commands."""


@reports.command(name="client")
@with_period_options
def client_reports(start: str | None, end: str | None, output_format: str) -> None:
    """Generate and send per-client reports plus the admin summary."""
    if output_format == "text":
        header("Client Weekly Reports")
    _run_command(
        lambda service, period: service.generate_client_reports(period),
        start,
        end,
        output_format,
    )


@reports.command(name="combined")
@with_period_options
def combined_report(start: str | None, end: str | None, output_format: str) -> None:
    """Generate, archive and send the combined report."""
    if output_format == "text":
        header("Combined Weekly Report")
    _run_command(
        lambda service, period: service.generate_combined_report(period),
        start,
        end,
        output_format,
    )


@reports.command(name="failed")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@coro
async def failed_deliveries(output_format: str) -> None:
    """List deliveries that exhausted their attempts."""
    records = await get_failed_delivery_log().list()

    if output_format == "json":
        click.echo(json.dumps([r.model_dump(mode="json") for r in records], indent=2))
        return

    header("Failed Deliveries")
    if not records:
        info("No failed deliveries")
        return

    click.echo(f"{'Failed At':<21} {'Recipient':<35} {'Attempts':<9} Error")
    click.echo("-" * 90)
    for record in records:
        click.echo(
            f"{record.failed_at.strftime('%Y-%m-%d %H:%M:%S'):<21} "
            f"{record.recipient:<35} {record.attempts:<9} {record.error or ''}"
        )
    click.echo()
    warning(f"Total: {len(records)} failed deliveries")
