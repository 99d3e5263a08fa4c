"""Database access: declarative base and async session management."""

from __future__ import annotations

from .base import Base
from .session import (
    build_engine,
    build_session_factory,
    check_database,
    close_database,
    get_async_session,
    get_engine,
    get_session_factory,
)

__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "check_database",
    "close_database",
    "get_async_session",
    "get_engine",
    "get_session_factory",
]
