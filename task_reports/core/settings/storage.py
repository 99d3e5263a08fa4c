"""File storage configuration settings.

Environment variables use STORAGE_ prefix.
Example: STORAGE_BACKEND="s3"
         STORAGE_BUCKET="reports"

Supports:
- Local filesystem (default)
- AWS S3 (no endpoint needed)
- MinIO / LocalStack (set endpoint to the server URL)
"""

from __future__ import annotations

from pathlib import Path
from tempfile import gettempdir
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STORAGE_ROOT = Path(gettempdir()) / "task_reports_storage"


class StorageSettings(BaseSettings):
    """Document archive storage settings."""

    # ──────────────────────────────────────────────────────────────
    # Backend selection
    # ──────────────────────────────────────────────────────────────

    backend: Literal["local", "s3"] = Field(
        default="local",
        description="Storage backend: local filesystem or S3-compatible object storage",
    )

    # ──────────────────────────────────────────────────────────────
    # Local filesystem
    # ──────────────────────────────────────────────────────────────

    local_root: Path = Field(
        default=DEFAULT_STORAGE_ROOT,
        description="Root directory for the local backend",
    )

    # ──────────────────────────────────────────────────────────────
    # S3 Connection Configuration
    # ──────────────────────────────────────────────────────────────

    bucket: str | None = Field(
        default=None,
        description="Bucket name for the S3 backend",
    )
    endpoint: str | None = Field(
        default=None,
        description="S3-compatible endpoint URL (for MinIO/LocalStack). None for AWS S3.",
    )
    region: str = Field(default="us-east-1", description="AWS region")
    access_key: SecretStr | None = Field(default=None, description="S3 access key ID")
    secret_key: SecretStr | None = Field(default=None, description="S3 secret access key")
    key_prefix: str = Field(
        default="",
        description="Optional prefix prepended to every object key",
    )

    @model_validator(mode="after")
    def validate_s3_bucket(self) -> StorageSettings:
        """An S3 backend needs a bucket."""
        if self.backend == "s3" and not self.bucket:
            msg = "STORAGE_BUCKET is required when STORAGE_BACKEND=s3"
            raise ValueError(msg)
        return self

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
