"""Task data access.

The core only sees the ``TaskDataSource`` protocol and immutable value
objects. The SQLAlchemy implementation eager-loads every relation in the
same query, so no lazy loading ever happens outside a session.
"""

from __future__ import annotations

from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from .models import Client, Project, Task, User
from .schemas import ClientRecord, PersonRef, ProjectRef, TaskRecord

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from .schemas import ReportPeriod

logger = logging.getLogger(__name__)


@runtime_checkable
class TaskDataSource(Protocol):
    """Read-only source of report inputs."""

    async def list_tasks(
        self,
        period: ReportPeriod,
        client_id: int | None = None,
    ) -> list[TaskRecord]:
        """Tasks created in ``[period.start, period.end)``, optionally for one client."""
        ...

    async def list_clients(self) -> list[ClientRecord]:
        """All clients, ordered by id."""
        ...


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_task_record(task: Task) -> TaskRecord:
    """Map an ORM task (with relations loaded) to a value object."""
    project = ProjectRef(id=task.project.id, title=task.project.title) if task.project else None
    creator = _to_person(task.creator) if task.creator else None
    return TaskRecord(
        id=task.id,
        title=task.title,
        description=task.description,
        start_date=task.start_date,
        time_spent=task.time_spent or "",
        created_at=_as_utc(task.created_at),
        project=project,
        creator=creator,
    )


def _to_person(user: User) -> PersonRef:
    return PersonRef(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name or "",
        email=user.email,
    )


def to_client_record(client: Client) -> ClientRecord:
    return ClientRecord(
        id=client.id,
        first_name=client.first_name,
        last_name=client.last_name or "",
        email=client.email,
    )


class SqlAlchemyTaskRepository:
    """``TaskDataSource`` backed by the project-management database.

    Example:
        repository = SqlAlchemyTaskRepository(get_session_factory())
        tasks = await repository.list_tasks(period, client_id=4)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_tasks(
        self,
        period: ReportPeriod,
        client_id: int | None = None,
    ) -> list[TaskRecord]:
        start, end = period.as_utc()
        stmt = (
            select(Task)
            .options(selectinload(Task.project), selectinload(Task.creator))
            .where(Task.created_at >= start, Task.created_at < end)
            .order_by(Task.created_at, Task.id)
        )
        if client_id is not None:
            stmt = stmt.where(Task.project.has(Project.clients.any(Client.id == client_id)))

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            tasks: Sequence[Task] = result.scalars().all()
            records = [to_task_record(task) for task in tasks]

        logger.debug(
            "Loaded tasks",
            extra={
                "client_id": client_id,
                "count": len(records),
                "period_start": start.isoformat(),
                "period_end": end.isoformat(),
            },
        )
        return records

    async def list_clients(self) -> list[ClientRecord]:
        async with self._session_factory() as session:
            result = await session.execute(select(Client).order_by(Client.id))
            return [to_client_record(client) for client in result.scalars().all()]
