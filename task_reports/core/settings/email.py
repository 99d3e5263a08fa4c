"""Outbound mail settings for report delivery.

Environment variables use EMAIL_ prefix.
Example: EMAIL_ENABLED=true
         EMAIL_SMTP_HOST="mail.example.com"

With EMAIL_ENABLED=false every report is written to the log instead of
being sent, whatever EMAIL_BACKEND says.
"""

from __future__ import annotations

from pathlib import Path
from tempfile import gettempdir
from typing import Any, Literal

from pydantic import EmailStr, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._sanitizers import sanitize_inline_numeric

DEFAULT_OUTBOX_DIR = Path(gettempdir()) / "task_reports_outbox"


class EmailSettings(BaseSettings):
    """Mail transport used by the delivery worker."""

    # ──────────────────────────────────────────────────────────────
    # Transport
    # ──────────────────────────────────────────────────────────────

    enabled: bool = Field(
        default=False,
        description="Send report emails; when off they are only logged",
    )
    backend: Literal["smtp", "console", "file"] = Field(
        default="smtp",
        description="smtp sends for real, console logs, file writes an outbox",
    )

    # ──────────────────────────────────────────────────────────────
    # SMTP server
    # ──────────────────────────────────────────────────────────────

    smtp_host: str = Field(default="localhost", min_length=1, max_length=255)
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_username: str | None = Field(default=None, max_length=255)
    smtp_password: SecretStr | None = None
    use_tls: bool = Field(default=True, description="STARTTLS after connecting")
    use_ssl: bool = Field(default=False, description="Implicit TLS from the first byte")
    validate_certs: bool = Field(
        default=True,
        description="Turn off only for a relay with a self-signed certificate",
    )
    timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Seconds allowed per SMTP conversation; a timeout counts as a failed attempt",
    )

    # ──────────────────────────────────────────────────────────────
    # Sender
    # ──────────────────────────────────────────────────────────────

    default_from_email: EmailStr = Field(
        default="reports@example.com",
        description="From address on client, summary and combined reports",
    )
    default_from_name: str = Field(default="Task Reports", max_length=100)
    reply_to: EmailStr | None = Field(
        default=None,
        description="Where client replies to a report should go",
    )

    # ──────────────────────────────────────────────────────────────
    # Bodies and outbox
    # ──────────────────────────────────────────────────────────────

    template_dir: str = Field(
        default="templates/email",
        description="Report email templates, relative to the task_reports package",
    )
    default_template_context: dict | None = Field(
        default=None,
        description="Values merged into every report email template",
    )
    file_path: str = Field(
        default=str(DEFAULT_OUTBOX_DIR),
        description="Outbox directory for the file backend",
    )

    @field_validator("smtp_port", "timeout", mode="before")
    @classmethod
    def _normalize_numeric(cls, value: Any) -> Any:
        return sanitize_inline_numeric(value)

    @model_validator(mode="after")
    def _check_transport(self) -> EmailSettings:
        if self.use_tls and self.use_ssl:
            msg = "EMAIL_USE_TLS and EMAIL_USE_SSL cannot both be enabled"
            raise ValueError(msg)
        if (self.smtp_username is None) != (self.smtp_password is None):
            msg = "EMAIL_SMTP_USERNAME and EMAIL_SMTP_PASSWORD must be set together"
            raise ValueError(msg)
        return self

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def requires_auth(self) -> bool:
        return self.smtp_username is not None

    def get_smtp_url(self) -> str:
        """Server URL for logs; never includes the password."""
        scheme = "smtps" if self.use_ssl else "smtp"
        auth = f"{self.smtp_username}@" if self.smtp_username else ""
        return f"{scheme}://{auth}{self.smtp_host}:{self.smtp_port}"
