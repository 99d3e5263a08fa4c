"""Logging configuration settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseSettings):
    """Structured logging configuration.

    Environment variables use LOG_ prefix.
    Example: LOG_LEVEL=DEBUG, LOG_JSON_LOGS=false
    """

    # ──────────────────────────────────────────────────────────────
    # Levels
    # ──────────────────────────────────────────────────────────────

    level: LogLevel = Field(default="INFO", description="Root logger level")
    console_level: LogLevel | None = Field(
        default=None,
        description="Console handler level (defaults to level)",
    )
    file_level: LogLevel | None = Field(
        default=None,
        description="File handler level (defaults to level)",
    )

    # ──────────────────────────────────────────────────────────────
    # Output
    # ──────────────────────────────────────────────────────────────

    json_logs: bool = Field(
        default=True,
        description="Emit JSON Lines instead of human-readable text",
    )
    console_enabled: bool = Field(default=True, description="Log to stderr")
    file_path: Path | None = Field(
        default=None,
        description="Optional log file path; rotated by size",
    )
    file_max_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Rotate the log file after this many bytes",
    )
    file_backup_count: int = Field(
        default=5,
        ge=0,
        le=100,
        description="Number of rotated log files to keep",
    )

    # ──────────────────────────────────────────────────────────────
    # Context injection
    # ──────────────────────────────────────────────────────────────

    include_context: bool = Field(
        default=True,
        description="Enable automatic context injection via ContextInjectingFilter",
    )
    capture_warnings: bool = Field(
        default=True,
        description="Forward Python `warnings` module output to the logging system.",
    )
    include_function_name: bool = Field(
        default=False,
        description="Include function name in log records (adds overhead)",
    )

    @field_validator("level", "console_level", "file_level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Translate settings into configure_logging() keyword arguments."""
        return {
            "log_level": self.level,
            "console_level": self.console_level,
            "file_level": self.file_level,
            "file_path": self.file_path,
            "json_logs": self.json_logs,
            "console_enabled": self.console_enabled,
            "include_context": self.include_context,
            "capture_warnings": self.capture_warnings,
            "include_function_name": self.include_function_name,
            "file_max_bytes": self.file_max_bytes,
            "file_backup_count": self.file_backup_count,
        }
