"""Application identity settings."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["development", "staging", "production", "test"]


class AppSettings(BaseSettings):
    """Service identity shared by logging, mail headers and the CLI.

    Environment variables use APP_ prefix.
    Example: APP_ENVIRONMENT=production, APP_DEBUG=false
    """

    service_name: str = Field(
        default="task-reports",
        min_length=1,
        max_length=100,
        pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$",
        description="Service name for logging/tracing (lowercase, hyphens allowed)",
    )
    version: str = Field(
        default="0.1.0",
        min_length=1,
        max_length=50,
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9]+)?$",
        description="Service version (semver format)",
    )
    environment: Environment = Field(
        default="development",
        description="Environment: development|staging|production|test",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"
