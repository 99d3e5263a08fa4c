"""Main CLI entry point for task-reports."""

import click

from task_reports import __version__
from task_reports.cli.commands import reports, scheduler
from task_reports.infra.logging import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="task-reports")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Task Reports CLI - weekly task report generation and delivery.

    \b
    Command Groups:
      reports    Generate reports now and inspect failed deliveries
      scheduler  Run and inspect the weekly schedule

    \b
    Quick Start:
      task-reports reports client                # Last week, every client
      task-reports reports combined --start 2025-01-06 --end 2025-01-13
      task-reports scheduler run                 # Weekly triggers
    """
    ctx.ensure_object(dict)
    setup_logging()


cli.add_command(reports.reports)
cli.add_command(scheduler.scheduler)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
