"""Modular Pydantic Settings v2 configuration.

Settings are split by concern (app/db/email/logging/rabbit/reports/storage),
read from environment variables with a per-domain prefix and frozen after
validation.

Import settings via cached loaders:
    from task_reports.core.settings import get_report_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables (production)
    3. .env file (development only)
"""

from __future__ import annotations

from .app import AppSettings
from .database import DatabaseSettings
from .email import EmailSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_email_settings,
    get_logging_settings,
    get_rabbit_settings,
    get_report_settings,
    get_storage_settings,
)
from .logs import LoggingSettings
from .rabbit import RabbitSettings
from .reports import ReportSettings
from .storage import StorageSettings

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "EmailSettings",
    "LoggingSettings",
    "RabbitSettings",
    "ReportSettings",
    "StorageSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_email_settings",
    "get_logging_settings",
    "get_rabbit_settings",
    "get_report_settings",
    "get_storage_settings",
]
