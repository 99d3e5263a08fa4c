"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from task_reports.core.settings.loader import get_report_settings

    settings = get_report_settings()  # First call: loads and validates
    settings = get_report_settings()  # Subsequent calls: returns cached instance

Testing:
    In tests, clear the cache to force reload:
    clear_all_caches()

    Or construct settings directly:
    settings = ReportSettings(admin_email="office@example.com")
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .database import DatabaseSettings
from .email import EmailSettings
from .logs import LoggingSettings
from .rabbit import RabbitSettings
from .reports import ReportSettings
from .storage import StorageSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings.

    Returns:
        Validated and frozen AppSettings instance.
    """
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings.

    Returns:
        Validated and frozen DatabaseSettings instance.
    """
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_email_settings() -> EmailSettings:
    """Get cached email settings."""
    return EmailSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_rabbit_settings() -> RabbitSettings:
    """Get cached RabbitMQ settings.

    Returns:
        Validated and frozen RabbitSettings instance.
    """
    return RabbitSettings()


@lru_cache(maxsize=1)
def get_report_settings() -> ReportSettings:
    """Get cached report pipeline settings."""
    return ReportSettings()


@lru_cache(maxsize=1)
def get_storage_settings() -> StorageSettings:
    """Get cached storage settings."""
    return StorageSettings()


def clear_all_caches() -> None:
    """Clear all settings caches.

    Useful for testing or when you need to force reload settings.
    In production, prefer process restarts over cache clearing.
    """
    get_app_settings.cache_clear()
    get_db_settings.cache_clear()
    get_email_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_rabbit_settings.cache_clear()
    get_report_settings.cache_clear()
    get_storage_settings.cache_clear()
