"""Weekly task reports: aggregate, render, archive and deliver.

Example:
    from task_reports.features.reports import ReportPeriod, build_report_service

    service = build_report_service(queue)
    await service.generate_client_reports(ReportPeriod.last_week(now))
"""

from __future__ import annotations

from .aggregator import aggregate, format_minutes, parse_time_spent
from .delivery import (
    BrokerDeliveryQueue,
    DeliveryAttachment,
    DeliveryOutcome,
    DeliveryQueue,
    DeliveryStatus,
    DeliveryTask,
    FailedDeliveryLog,
    FailedDeliveryRecord,
    InMemoryDeliveryQueue,
    InMemoryFailedDeliveryLog,
    OutcomeKind,
    StorageFailedDeliveryLog,
    attempt_delivery,
    process_delivery,
)
from .dependencies import (
    build_report_service,
    get_email_templates,
    get_failed_delivery_log,
    get_report_storage,
    get_task_repository,
    get_transport,
)
from .renderer import ReportRenderer
from .repository import SqlAlchemyTaskRepository, TaskDataSource
from .schemas import (
    AggregateReport,
    ClientRecord,
    PersonRef,
    ProjectRef,
    RenderedDocument,
    ReportKind,
    ReportPeriod,
    ReportRunResult,
    TaskRecord,
)
from .service import ReportService

__all__ = [
    "AggregateReport",
    "BrokerDeliveryQueue",
    "ClientRecord",
    "DeliveryAttachment",
    "DeliveryOutcome",
    "DeliveryQueue",
    "DeliveryStatus",
    "DeliveryTask",
    "FailedDeliveryLog",
    "FailedDeliveryRecord",
    "InMemoryDeliveryQueue",
    "InMemoryFailedDeliveryLog",
    "OutcomeKind",
    "PersonRef",
    "ProjectRef",
    "RenderedDocument",
    "ReportKind",
    "ReportPeriod",
    "ReportRenderer",
    "ReportRunResult",
    "ReportService",
    "SqlAlchemyTaskRepository",
    "StorageFailedDeliveryLog",
    "TaskDataSource",
    "TaskRecord",
    "aggregate",
    "attempt_delivery",
    "build_report_service",
    "format_minutes",
    "get_email_templates",
    "get_failed_delivery_log",
    "get_report_storage",
    "get_task_repository",
    "get_transport",
    "parse_time_spent",
    "process_delivery",
]
