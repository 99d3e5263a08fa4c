"""Console output for the report commands.

Status lines carry a leading symbol so they stay readable when colour is
stripped (cron mail, CI logs). Errors go to stderr so ``--format json``
output on stdout remains parseable.
"""

import click


def _status(symbol: str, message: str, colour: str, *, err: bool = False) -> None:
    click.secho(f"{symbol} {message}", fg=colour, err=err)


def success(message: str) -> None:
    _status("✓", message, "green")


def error(message: str) -> None:
    _status("✗", message, "red", err=True)


def warning(message: str) -> None:
    _status("⚠", message, "yellow")


def info(message: str) -> None:
    _status("ℹ", message, "blue")


def header(message: str) -> None:
    """Section title, preceded by a blank line."""
    click.secho(f"\n{message}", fg="cyan", bold=True)


def document_line(file_name: str, total: str) -> str:
    """One row of a report listing: file name padded, then its total time."""
    return f"  {file_name:<60} {total}"
