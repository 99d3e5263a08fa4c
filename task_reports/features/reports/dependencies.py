"""Wiring for the report pipeline.

The service and its collaborators never read settings themselves; the
worker tasks and CLI commands build them here from the cached settings.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from task_reports.core.settings import (
    get_email_settings,
    get_report_settings,
    get_storage_settings,
)
from task_reports.infra.database import get_session_factory
from task_reports.infra.email.providers import get_email_provider
from task_reports.infra.email.templates import EmailTemplateRenderer
from task_reports.infra.storage import get_storage_backend

from .delivery import StorageFailedDeliveryLog
from .renderer import ReportRenderer
from .repository import SqlAlchemyTaskRepository
from .service import ReportService

if TYPE_CHECKING:
    from task_reports.infra.email.providers.base import EmailProvider
    from task_reports.infra.storage.protocol import StorageBackend

    from .delivery import DeliveryQueue


@lru_cache(maxsize=1)
def get_transport() -> EmailProvider:
    """Email provider selected by ``EMAIL_BACKEND``."""
    return get_email_provider(get_email_settings())


@lru_cache(maxsize=1)
def get_report_storage() -> StorageBackend:
    """Archive storage selected by ``STORAGE_BACKEND``."""
    return get_storage_backend(get_storage_settings())


@lru_cache(maxsize=1)
def get_email_templates() -> EmailTemplateRenderer:
    return EmailTemplateRenderer(get_email_settings())


def get_failed_delivery_log() -> StorageFailedDeliveryLog:
    return StorageFailedDeliveryLog(get_report_storage(), get_report_settings().failed_prefix)


def get_task_repository() -> SqlAlchemyTaskRepository:
    return SqlAlchemyTaskRepository(get_session_factory())


def build_report_service(queue: DeliveryQueue) -> ReportService:
    """Report service wired from settings, delivering through ``queue``."""
    return ReportService(
        data_source=get_task_repository(),
        renderer=ReportRenderer(),
        queue=queue,
        storage=get_report_storage(),
        email_templates=get_email_templates(),
        settings=get_report_settings(),
    )
