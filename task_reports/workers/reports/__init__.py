"""Weekly report generation and delivery tasks."""

from __future__ import annotations

from .tasks import (
    deliver_report,
    generate_client_weekly_reports,
    generate_combined_weekly_report,
)

__all__ = [
    "deliver_report",
    "generate_client_weekly_reports",
    "generate_combined_weekly_report",
]
