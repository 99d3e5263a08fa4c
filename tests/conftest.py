"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings that keep tests off real infrastructure
    - Domain Fixtures: clients, tasks and periods for report runs
    - Delivery Fixtures: fake mail transports
    - Database Fixtures: in-memory SQLite engine and session factory
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime
import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

# Ensure tests run without external infrastructure
os.environ.setdefault("DB_ENABLED", "false")
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("EMAIL_ENABLED", "false")
os.environ.setdefault("LOG_JSON_LOGS", "false")
os.environ.setdefault("REPORT_TIMEZONE", "UTC")

from task_reports.core.settings import clear_all_caches  # noqa: E402
from task_reports.features.reports.schemas import (  # noqa: E402
    ClientRecord,
    PersonRef,
    ProjectRef,
    ReportPeriod,
    TaskRecord,
)
from task_reports.infra.email.providers.base import EmailDeliveryResult  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Reload settings for every test so monkeypatched env vars apply."""
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Domain Fixtures
# ============================================================================


@pytest.fixture
def creator() -> PersonRef:
    return PersonRef(id=1, first_name="ada", last_name="lovelace", email="ada@example.com")


@pytest.fixture
def project() -> ProjectRef:
    return ProjectRef(id=10, title="Website Redesign")


@pytest.fixture
def client_record() -> ClientRecord:
    return ClientRecord(id=100, first_name="Jane", last_name="Doe", email="jane@example.com")


@pytest.fixture
def period() -> ReportPeriod:
    """The week of Monday 2025-01-06."""
    return ReportPeriod(
        start=datetime(2025, 1, 6, tzinfo=UTC),
        end=datetime(2025, 1, 13, tzinfo=UTC),
    )


@pytest.fixture
def make_task(project: ProjectRef, creator: PersonRef) -> Callable[..., TaskRecord]:
    """Factory for task records; keyword arguments override the defaults.

    Example:
        def test_total(make_task):
            task = make_task(time_spent="2:30")
    """
    counter = iter(range(1, 10_000))

    def _make(**overrides) -> TaskRecord:
        task_id = overrides.pop("id", next(counter))
        values = {
            "id": task_id,
            "title": f"Task {task_id}",
            "time_spent": "1:00",
            "created_at": datetime(2025, 1, 7, 9, 0, tzinfo=UTC),
            "project": project,
            "creator": creator,
        }
        values.update(overrides)
        return TaskRecord(**values)

    return _make


# ============================================================================
# Delivery Fixtures
# ============================================================================


class ScriptedTransport:
    """Mail transport that replays a script of outcomes.

    Each entry is ``True`` (success), ``False`` (failed result) or an
    exception instance to raise. The last entry repeats once exhausted.
    """

    provider_name = "scripted"

    def __init__(self, *script: bool | Exception) -> None:
        self.script = list(script) or [True]
        self.sent = []

    async def send(self, message):
        self.sent.append(message)
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, Exception):
            raise step
        if step:
            return EmailDeliveryResult.success_result(
                message_id=f"msg-{len(self.sent)}",
                provider=self.provider_name,
                recipients=message.all_recipients,
            )
        return EmailDeliveryResult.failure_result(
            provider=self.provider_name,
            error="Connection refused",
            error_code="SMTP_CONNECTION_ERROR",
        )

    async def health_check(self) -> bool:
        return True


@pytest.fixture
def scripted_transport() -> Callable[..., ScriptedTransport]:
    return ScriptedTransport


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Async SQLAlchemy engine on in-memory SQLite with every table created."""
    from task_reports.features.reports import models  # noqa: F401
    from task_reports.infra.database import Base

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, expire_on_commit=False)
