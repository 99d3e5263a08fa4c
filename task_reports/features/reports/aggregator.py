"""Time-spent parsing and totals.

Task durations are stored as ``"H:MM"`` strings. Totals are kept in
minutes and formatted as ``"X hrs Y mins"``.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from task_reports.core.exceptions import ReportDataError

from .schemas import AggregateReport

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .schemas import TaskRecord

_TIME_SPENT = re.compile(r"^\s*(\d+):(\d{1,2})\s*$")


def parse_time_spent(raw: str | None, *, task_id: int | None = None) -> int:
    """Convert ``"H:MM"`` into minutes.

    Raises:
        ReportDataError: If ``raw`` is missing, not ``hours:minutes`` or has
            minutes outside 0-59.
    """
    where = f" on task {task_id}" if task_id is not None else ""
    match = _TIME_SPENT.match(raw or "")
    if match is None:
        raise ReportDataError(
            detail=f"Malformed time spent {raw!r}{where}",
            extra={"task_id": task_id, "time_spent": raw},
        )

    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59:
        raise ReportDataError(
            detail=f"Minutes out of range in time spent {raw!r}{where}",
            extra={"task_id": task_id, "time_spent": raw},
        )
    return hours * 60 + minutes


def format_minutes(total: int) -> str:
    """Format minutes as ``"{h} hrs {m} mins"``; zero parts are kept."""
    if total < 0:
        msg = f"total minutes must be non-negative, got {total}"
        raise ValueError(msg)
    return f"{total // 60} hrs {total % 60} mins"


def aggregate(tasks: Sequence[TaskRecord]) -> AggregateReport:
    """Total the time spent on ``tasks``.

    Each row is formatted from its own minutes; the grand total is the sum
    in input order. An empty sequence yields ``"0 hrs 0 mins"``.
    """
    per_task_minutes = tuple(parse_time_spent(task.time_spent, task_id=task.id) for task in tasks)
    total = sum(per_task_minutes)
    return AggregateReport(
        per_task=tuple(format_minutes(minutes) for minutes in per_task_minutes),
        per_task_minutes=per_task_minutes,
        total_formatted=format_minutes(total),
        total_minutes=total,
    )
