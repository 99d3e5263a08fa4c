"""Scheduler commands.

- ``scheduler list``: the weekly jobs and their triggers
- ``scheduler run``: run APScheduler in the foreground until interrupted
- ``scheduler trigger``: kick one weekly job now
"""

from __future__ import annotations

import asyncio
import json
import sys

import click

from task_reports.cli.utils import coro, error, header, info, success, warning
from task_reports.core.settings import get_report_settings


@click.group(name="scheduler")
def scheduler() -> None:
    """Weekly schedule commands."""


@scheduler.command(name="list")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
def list_jobs(output_format: str) -> None:
    """List the weekly jobs that would be registered."""
    from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]

    from task_reports.infra.tasks.scheduler import get_job_status, setup_scheduled_jobs

    settings = get_report_settings()
    preview = AsyncIOScheduler(timezone=settings.tzinfo)
    setup_scheduled_jobs(settings, preview)
    jobs = get_job_status(preview)

    if output_format == "json":
        click.echo(json.dumps(jobs, indent=2))
        return

    header("Scheduled Jobs")
    if not jobs:
        warning("Report scheduling is disabled")
        return

    id_width = max(len(j["id"]) for j in jobs) + 2
    name_width = max(len(j["name"]) for j in jobs) + 2
    click.echo(f"{'ID':<{id_width}} {'Name':<{name_width}} Trigger")
    click.echo("-" * (id_width + name_width + 40))
    for job in jobs:
        click.echo(f"{job['id']:<{id_width}} {job['name']:<{name_width}} {job['trigger']}")
    click.echo()
    success(f"Total: {len(jobs)} scheduled jobs")


@scheduler.command(name="run")
@coro
async def run_scheduler() -> None:
    """Run the weekly triggers until interrupted."""
    from task_reports.infra.tasks.broker import start_taskiq, stop_taskiq
    from task_reports.infra.tasks.scheduler import (
        setup_scheduled_jobs,
        start_scheduler,
        stop_scheduler,
    )

    header("Report Scheduler")
    await start_taskiq()
    job_ids = setup_scheduled_jobs()
    if not job_ids:
        warning("Report scheduling is disabled, nothing to run")
        await stop_taskiq()
        return

    await start_scheduler()
    info(f"Running {len(job_ids)} job(s), press Ctrl+C to stop")
    try:
        await asyncio.Event().wait()
    finally:
        await stop_scheduler()
        await stop_taskiq()
        success("Scheduler stopped")


@scheduler.command(name="trigger")
@click.argument("job", type=click.Choice(["client", "combined"]))
@coro
async def trigger_job(job: str) -> None:
    """Kick a weekly job to the Taskiq workers now."""
    from task_reports.infra.tasks.broker import start_taskiq, stop_taskiq
    from task_reports.workers.reports.tasks import (
        generate_client_weekly_reports,
        generate_combined_weekly_report,
    )

    task = generate_client_weekly_reports if job == "client" else generate_combined_weekly_report
    await start_taskiq()
    try:
        kicked = await task.kiq()
    except Exception as e:
        error(f"Failed to kick {job} job: {e}")
        sys.exit(1)
    finally:
        await stop_taskiq()
    success(f"Kicked {job} job (task id {kicked.task_id})")
