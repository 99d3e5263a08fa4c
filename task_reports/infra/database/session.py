"""Async engine and session factory construction."""

from __future__ import annotations

from contextlib import asynccontextmanager
from functools import lru_cache
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from task_reports.core.settings import get_app_settings, get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from task_reports.core.settings.database import DatabaseSettings

logger = logging.getLogger(__name__)


def build_engine(settings: DatabaseSettings, *, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine from database settings.

    SQLite URLs get no pool sizing arguments since aiosqlite uses a
    static/null pool.
    """
    url = settings.get_sqlalchemy_url()
    kwargs: dict[str, Any] = {"echo": settings.echo if echo is None else echo}
    if not settings.is_sqlite:
        kwargs.update(
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
            pool_recycle=settings.pool_recycle,
            pool_pre_ping=settings.pool_pre_ping,
        )
    return create_async_engine(url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Process-wide engine for the CLI and worker entrypoints."""
    return build_engine(get_db_settings(), echo=get_db_settings().echo or get_app_settings().debug)


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Process-wide session factory bound to ``get_engine()``."""
    return build_session_factory(get_engine())


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get an async database session.

    Example:
        async with get_async_session() as session:
            result = await session.execute(select(Task))
    """
    async with get_session_factory()() as session:
        yield session


async def check_database() -> None:
    """Run ``SELECT 1`` to verify connectivity.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: If the database cannot be reached.
    """
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Database connection established")


async def close_database() -> None:
    """Dispose the process-wide engine, if one was created."""
    if get_engine.cache_info().currsize == 0:
        return
    logger.info("Closing database connection")
    await get_engine().dispose()
    get_session_factory.cache_clear()
    get_engine.cache_clear()
