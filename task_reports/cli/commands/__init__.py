"""CLI command modules."""

from task_reports.cli.commands import reports, scheduler

__all__ = ["reports", "scheduler"]
