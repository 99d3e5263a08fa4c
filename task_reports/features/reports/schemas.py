"""Value objects passed through the report pipeline.

Everything here is immutable and fully populated: the repository resolves
projects, creators and clients up front so nothing downstream touches the
ORM or triggers lazy loads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta, tzinfo
from enum import StrEnum
import re

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Lowercase ``value`` and collapse non-alphanumerics to single hyphens."""
    return _SLUG_STRIP.sub("-", value.lower()).strip("-") or "unnamed"


class ReportKind(StrEnum):
    """Which audience a report is built for."""

    ADMIN = "admin"
    CLIENT = "client"

    @property
    def file_prefix(self) -> str:
        return "weekly_tasks" if self is ReportKind.ADMIN else "tasks"


@dataclass(frozen=True, slots=True)
class PersonRef:
    """A task creator."""

    id: int
    first_name: str
    last_name: str
    email: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def initials(self) -> str:
        """Upper-cased first letters of first and last name."""
        return f"{self.first_name[:1]}{self.last_name[:1]}".upper()


@dataclass(frozen=True, slots=True)
class ProjectRef:
    id: int
    title: str


@dataclass(frozen=True, slots=True)
class ClientRecord:
    """A report recipient."""

    id: int
    first_name: str
    last_name: str
    email: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def slug(self) -> str:
        return slugify(self.full_name)


@dataclass(frozen=True, slots=True)
class TaskRecord:
    """Snapshot of a task at report time.

    ``project`` and ``creator`` are optional only because the source data may
    have dangling references; the renderer rejects such rows.
    """

    id: int
    title: str
    time_spent: str
    created_at: datetime
    project: ProjectRef | None
    creator: PersonRef | None
    description: str | None = None
    start_date: date | None = None


@dataclass(frozen=True, slots=True)
class ReportPeriod:
    """Half-open ``[start, end)`` reporting window."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            msg = "ReportPeriod bounds must be timezone-aware"
            raise ValueError(msg)
        if self.start >= self.end:
            msg = f"ReportPeriod start {self.start.isoformat()} must precede end {self.end.isoformat()}"
            raise ValueError(msg)

    @classmethod
    def last_week(cls, now: datetime, tz: tzinfo = UTC) -> ReportPeriod:
        """Monday 00:00 of the previous week up to Monday 00:00 of this week.

        Example:
            A run on Wednesday 2025-01-08 covers 2024-12-30 00:00 up to
            2025-01-06 00:00.
        """
        if now.tzinfo is None:
            msg = "now must be timezone-aware"
            raise ValueError(msg)
        local = now.astimezone(tz)
        monday = (local - timedelta(days=local.weekday())).date()
        end = datetime(monday.year, monday.month, monday.day, tzinfo=tz)
        start_day = monday - timedelta(days=7)
        start = datetime(start_day.year, start_day.month, start_day.day, tzinfo=tz)
        return cls(start=start, end=end)

    @classmethod
    def parse(cls, start: str, end: str, tz: tzinfo = UTC) -> ReportPeriod:
        """Build a period from ISO 8601 strings; naive values are read in ``tz``."""
        bounds = []
        for raw in (start, end):
            value = datetime.fromisoformat(raw)
            if value.tzinfo is None:
                value = value.replace(tzinfo=tz)
            bounds.append(value)
        return cls(start=bounds[0], end=bounds[1])

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def as_utc(self) -> tuple[datetime, datetime]:
        return self.start.astimezone(UTC), self.end.astimezone(UTC)

    @property
    def label(self) -> str:
        """Human-readable range, e.g. ``2024-12-30 to 2025-01-05``."""
        last_day = (self.end - timedelta(microseconds=1)).date()
        return f"{self.start.date().isoformat()} to {last_day.isoformat()}"


@dataclass(frozen=True, slots=True)
class AggregateReport:
    """Totals for a task set, aligned with the input order."""

    per_task: tuple[str, ...]
    per_task_minutes: tuple[int, ...]
    total_formatted: str
    total_minutes: int


@dataclass(frozen=True, slots=True)
class RenderedDocument:
    """A rendered PDF and the HTML it was laid out from."""

    kind: ReportKind
    file_name: str
    pdf: bytes
    html: str
    total_formatted: str
    client_id: int | None = None
    content_type: str = "application/pdf"

    @property
    def size_bytes(self) -> int:
        return len(self.pdf)


@dataclass(slots=True)
class ReportRunResult:
    """Summary of one trigger execution."""

    run_id: str
    kind: ReportKind
    period: ReportPeriod
    documents: list[RenderedDocument] = field(default_factory=list)
    enqueued: list[str] = field(default_factory=list)
    skipped_clients: list[int] = field(default_factory=list)
    failed_clients: dict[int, str] = field(default_factory=dict)
    archive_path: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "run_id": self.run_id,
            "kind": self.kind.value,
            "period_start": self.period.start.isoformat(),
            "period_end": self.period.end.isoformat(),
            "documents": [doc.file_name for doc in self.documents],
            "enqueued": list(self.enqueued),
            "skipped_clients": list(self.skipped_clients),
            "failed_clients": {str(k): v for k, v in self.failed_clients.items()},
            "archive_path": self.archive_path,
        }
