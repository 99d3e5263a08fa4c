"""APScheduler triggers for the weekly report runs.

APScheduler decides WHEN a run starts; the run itself is a Taskiq task so
it executes on a worker:

    APScheduler (in-process) → Taskiq kiq() → RabbitMQ → Taskiq Worker

Run the scheduler:
    task-reports scheduler run
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import (
    AsyncIOScheduler,  # type: ignore[import-untyped]
)
from apscheduler.triggers.cron import CronTrigger  # type: ignore[import-untyped]

from task_reports.core.settings import get_report_settings

if TYPE_CHECKING:
    from task_reports.core.settings.reports import ReportSettings

logger = logging.getLogger(__name__)

CLIENT_REPORTS_JOB_ID = "weekly_client_reports"
COMBINED_REPORT_JOB_ID = "weekly_combined_report"


def create_scheduler(settings: ReportSettings) -> AsyncIOScheduler:
    """Scheduler in the report timezone, one instance per job at a time."""
    return AsyncIOScheduler(
        timezone=settings.tzinfo,
        job_defaults={
            "coalesce": True,  # Combine missed weekly runs into one
            "max_instances": 1,
            "misfire_grace_time": 3600,
        },
    )


scheduler = create_scheduler(get_report_settings())


# =============================================================================
# Scheduler Job Wrappers
# =============================================================================
# APScheduler requires callables that await the Taskiq kiq() call.


async def _schedule_client_reports() -> None:
    """Kick the per-client weekly reports."""
    from task_reports.workers.reports.tasks import generate_client_weekly_reports

    await generate_client_weekly_reports.kiq()


async def _schedule_combined_report() -> None:
    """Kick the combined weekly report."""
    from task_reports.workers.reports.tasks import generate_combined_weekly_report

    await generate_combined_weekly_report.kiq()


# =============================================================================
# Scheduler Management
# =============================================================================


def weekly_trigger(settings: ReportSettings) -> CronTrigger:
    return CronTrigger(
        day_of_week=settings.schedule_day_of_week,
        hour=settings.schedule_hour,
        minute=settings.schedule_minute,
        timezone=settings.tzinfo,
    )


def _replace_job(
    target: AsyncIOScheduler,
    func: Any,
    trigger: CronTrigger,
    job_id: str,
    name: str,
) -> None:
    # replace_existing only applies once the scheduler has started
    if target.get_job(job_id) is not None:
        target.remove_job(job_id)
    target.add_job(func=func, trigger=trigger, id=job_id, name=name, replace_existing=True)


def setup_scheduled_jobs(
    settings: ReportSettings | None = None,
    target: AsyncIOScheduler | None = None,
) -> list[str]:
    """Register the weekly report jobs.

    Call AFTER the Taskiq broker is started.

    Returns:
        IDs of the jobs that were registered.
    """
    settings = settings or get_report_settings()
    target = target or scheduler

    if not settings.schedule_enabled:
        logger.warning("Report scheduling disabled (REPORT_SCHEDULE_ENABLED=false)")
        return []

    _replace_job(
        target,
        _schedule_client_reports,
        weekly_trigger(settings),
        CLIENT_REPORTS_JOB_ID,
        "Generate client weekly reports",
    )
    job_ids = [CLIENT_REPORTS_JOB_ID]

    if settings.combined_report_enabled:
        _replace_job(
            target,
            _schedule_combined_report,
            weekly_trigger(settings),
            COMBINED_REPORT_JOB_ID,
            "Generate combined weekly report",
        )
        job_ids.append(COMBINED_REPORT_JOB_ID)

    logger.info(
        "Scheduled weekly report jobs",
        extra={
            "jobs": job_ids,
            "day_of_week": settings.schedule_day_of_week,
            "hour": settings.schedule_hour,
            "minute": settings.schedule_minute,
            "timezone": settings.timezone,
        },
    )
    return job_ids


async def start_scheduler() -> None:
    """Start the APScheduler.

    Call after setup_scheduled_jobs().
    """
    if not scheduler.running:
        logger.info("Starting APScheduler")
        scheduler.start()
        logger.info("APScheduler started", extra={"jobs": len(scheduler.get_jobs())})
    else:
        logger.warning("APScheduler is already running")


async def stop_scheduler() -> None:
    """Stop the APScheduler gracefully."""
    if scheduler.running:
        logger.info("Stopping APScheduler")
        scheduler.shutdown(wait=True)
        logger.info("APScheduler stopped")
    else:
        logger.debug("APScheduler is not running")


# =============================================================================
# Job Management Utilities
# =============================================================================


def get_job_status(target: AsyncIOScheduler | None = None) -> list[dict[str, Any]]:
    """Get status of all scheduled jobs.

    Returns:
        List of job information dictionaries.
    """
    target = target or scheduler
    jobs = []
    for job in target.get_jobs():
        next_run = getattr(job, "next_run_time", None)
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": next_run.isoformat() if next_run else None,
                "trigger": str(job.trigger),
            }
        )
    return jobs
