"""Weekly report pipeline settings.

Environment variables use REPORT_ prefix.
Example: REPORT_ADMIN_EMAIL="office@example.com"
         REPORT_SCHEDULE_DAY_OF_WEEK="mon"
"""

from __future__ import annotations

from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import EmailStr, Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._sanitizers import sanitize_inline_numeric

DayOfWeek = Literal["mon", "tue", "wed", "thu", "fri", "sat", "sun"]


class ReportSettings(BaseSettings):
    """Report generation, archiving and delivery configuration."""

    # ──────────────────────────────────────────────────────────────
    # Recipients
    # ──────────────────────────────────────────────────────────────

    admin_email: EmailStr | None = Field(
        default=None,
        description="Recipient of the combined report and the admin summary",
    )

    # ──────────────────────────────────────────────────────────────
    # Subjects
    # ──────────────────────────────────────────────────────────────

    client_subject: str = Field(
        default="Your Weekly Tasks Report",
        min_length=1,
        max_length=500,
    )
    admin_summary_subject: str = Field(
        default="Weekly Tasks Report",
        min_length=1,
        max_length=500,
    )
    combined_subject: str = Field(
        default="Weekly Task Report",
        min_length=1,
        max_length=500,
    )

    # ──────────────────────────────────────────────────────────────
    # Email signature
    # ──────────────────────────────────────────────────────────────

    signature_name: str | None = Field(default=None, max_length=100)
    signature_title: str | None = Field(default=None, max_length=100)
    signature_lines: list[str] = Field(
        default_factory=list,
        description="Extra signature lines such as phone numbers",
    )

    # ──────────────────────────────────────────────────────────────
    # Delivery retry policy
    # ──────────────────────────────────────────────────────────────

    delivery_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Send attempts before a delivery is marked permanently failed",
    )
    delivery_retry_delay_seconds: int = Field(
        default=30,
        ge=0,
        le=3600,
        description="Fixed delay before a failed delivery is retried",
    )

    # ──────────────────────────────────────────────────────────────
    # Archiving
    # ──────────────────────────────────────────────────────────────

    archive_prefix: str = Field(
        default="backups",
        min_length=1,
        description="Storage path prefix for archived combined reports",
    )
    failed_prefix: str = Field(
        default="failed",
        min_length=1,
        description="Storage path prefix for permanently failed delivery records",
    )

    # ──────────────────────────────────────────────────────────────
    # Scheduling
    # ──────────────────────────────────────────────────────────────

    timezone: str = Field(
        default="UTC",
        description="Timezone used for week boundaries and the schedule",
    )
    schedule_enabled: bool = Field(default=True, description="Register weekly jobs")
    schedule_day_of_week: DayOfWeek = Field(default="mon")
    schedule_hour: int = Field(default=8, ge=0, le=23)
    schedule_minute: int = Field(default=0, ge=0, le=59)
    combined_report_enabled: bool = Field(
        default=True,
        description="Schedule the combined (all tasks) report alongside per-client reports",
    )

    # ──────────────────────────────────────────────────────────────
    # Concurrency
    # ──────────────────────────────────────────────────────────────

    max_concurrency: int = Field(
        default=1,
        ge=1,
        le=32,
        description="Per-client reports built in parallel",
    )

    @field_validator(
        "delivery_max_attempts",
        "delivery_retry_delay_seconds",
        "schedule_hour",
        "schedule_minute",
        "max_concurrency",
        mode="before",
    )
    @classmethod
    def _normalize_numeric(cls, value: Any) -> Any:
        """Allow numeric env vars with inline comments."""
        return sanitize_inline_numeric(value)

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except ZoneInfoNotFoundError as exc:
            msg = f"Unknown timezone: {value}"
            raise ValueError(msg) from exc
        return value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone object for week boundary calculations."""
        return ZoneInfo(self.timezone)

    model_config = SettingsConfigDict(
        env_prefix="REPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
