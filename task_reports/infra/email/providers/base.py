"""Base email provider protocol and abstract class.

Usage:
    class MyProvider(BaseEmailProvider):
        @property
        def provider_name(self) -> str:
            return "myprovider"

        async def _do_send(self, message: EmailMessage) -> EmailDeliveryResult:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
import logging
import time
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from task_reports.core.settings.email import EmailSettings
    from task_reports.infra.email.schemas import EmailMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailDeliveryResult:
    """Outcome of a single send attempt.

    Attributes:
        success: Whether delivery succeeded
        message_id: Provider-assigned message ID
        provider: Provider name (smtp, console, file)
        recipients_accepted: Accepted recipients
        recipients_rejected: Rejected recipients
        error: Error message if failed
        error_code: Error category for programmatic handling
        duration_ms: Time taken to send in milliseconds
        metadata: Provider-specific metadata
    """

    success: bool
    message_id: str | None
    provider: str
    recipients_accepted: list[str] = field(default_factory=list)
    recipients_rejected: list[str] = field(default_factory=list)
    error: str | None = None
    error_code: str | None = None
    duration_ms: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.success and not self.error:
            object.__setattr__(self, "error", "Unknown error")

    @classmethod
    def success_result(
        cls,
        message_id: str,
        provider: str,
        recipients: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> EmailDeliveryResult:
        return cls(
            success=True,
            message_id=message_id,
            provider=provider,
            recipients_accepted=recipients or [],
            metadata=metadata or {},
        )

    @classmethod
    def failure_result(
        cls,
        provider: str,
        error: str,
        error_code: str | None = None,
        recipients_rejected: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> EmailDeliveryResult:
        return cls(
            success=False,
            message_id=None,
            provider=provider,
            recipients_rejected=recipients_rejected or [],
            error=error,
            error_code=error_code,
            metadata=metadata or {},
        )


@runtime_checkable
class EmailProvider(Protocol):
    """Mail transport interface used by the delivery worker."""

    async def send(self, message: EmailMessage) -> EmailDeliveryResult:
        """Send an email message."""
        ...

    async def health_check(self) -> bool:
        """Check if the provider can send emails."""
        ...

    @property
    def provider_name(self) -> str:
        ...


class BaseEmailProvider(ABC):
    """Abstract base class for email providers.

    Wraps ``_do_send()`` with timing and logging. Provider failures come
    back as a failed ``EmailDeliveryResult``; unexpected exceptions are
    logged and converted the same way, so callers only inspect ``success``.
    """

    def __init__(self, settings: EmailSettings) -> None:
        self._settings = settings
        logger.debug("%s provider initialized", self.provider_name)

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def _do_send(self, message: EmailMessage) -> EmailDeliveryResult:
        ...

    async def _do_health_check(self) -> bool:
        return True

    @property
    def settings(self) -> EmailSettings:
        return self._settings

    def sender(self, message: EmailMessage) -> tuple[str, str | None]:
        """Resolve (from_email, from_name) against the configured defaults."""
        from_email = message.from_email or self._settings.default_from_email
        from_name = message.from_name or self._settings.default_from_name
        return str(from_email), from_name

    async def send(self, message: EmailMessage) -> EmailDeliveryResult:
        start_time = time.perf_counter()

        try:
            result = await self._do_send(message)
        except Exception as e:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            logger.exception(
                "Unexpected error in %s provider",
                self.provider_name,
                extra={"provider": self.provider_name, "duration_ms": duration_ms},
            )
            return replace(
                EmailDeliveryResult.failure_result(
                    provider=self.provider_name,
                    error=str(e),
                    error_code="UNEXPECTED_ERROR",
                ),
                duration_ms=duration_ms,
            )

        if result.duration_ms is None:
            result = replace(result, duration_ms=int((time.perf_counter() - start_time) * 1000))

        if result.success:
            logger.info(
                "Email sent via %s",
                self.provider_name,
                extra={
                    "message_id": result.message_id,
                    "provider": self.provider_name,
                    "recipients": len(result.recipients_accepted),
                    "duration_ms": result.duration_ms,
                },
            )
        else:
            logger.warning(
                "Email send failed via %s",
                self.provider_name,
                extra={
                    "provider": self.provider_name,
                    "error": result.error,
                    "error_code": result.error_code,
                    "duration_ms": result.duration_ms,
                },
            )
        return result

    async def health_check(self) -> bool:
        try:
            return await self._do_health_check()
        except Exception as e:
            logger.warning(
                "%s health check failed",
                self.provider_name,
                extra={"provider": self.provider_name, "error": str(e)},
            )
            return False
