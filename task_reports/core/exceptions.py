"""Custom exception classes for the reporting pipeline."""

from __future__ import annotations

from typing import Any


class ReportingError(Exception):
    """Base reporting exception.

    All custom exceptions should inherit from this class. Mirrors the
    Problem Details shape (type/title/detail/extra) so failures serialize
    consistently into logs and the failed-delivery log.

    Attributes:
        detail: Human-readable error message.
        type: Error type identifier.
        title: Short, human-readable summary of the problem type.
        extra: Additional context-specific information about the error.

    Example:
            raise ReportingError(
            detail="Report could not be built",
            type="report-error",
            extra={"client_id": 42},
        )
    """

    default_title = "Reporting Error"

    def __init__(
        self,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize reporting exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            title: Short summary of the problem type.
            extra: Additional context about the error.
        """
        self.detail = detail
        self.type = type
        self.title = title or self.default_title
        self.extra = extra or {}
        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the exception for structured logging."""
        return {
            "type": self.type,
            "title": self.title,
            "detail": self.detail,
            **self.extra,
        }


class ReportDataError(ReportingError):
    """Raised when task data cannot be reported on.

    Covers malformed time-spent values and missing project/creator/client
    relations. Fails the single report being built.

    Example:
            raise ReportDataError(
            detail="Malformed time spent 'abc'",
            extra={"task_id": 7, "time_spent": "abc"},
        )
    """

    default_title = "Invalid Report Data"

    def __init__(
        self,
        detail: str,
        type: str = "report-data-error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail=detail, type=type, extra=extra)


class ReportRenderError(ReportingError):
    """Raised when the HTML template or PDF layout cannot be produced."""

    default_title = "Report Rendering Failed"

    def __init__(
        self,
        detail: str,
        type: str = "report-render-error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail=detail, type=type, extra=extra)


class DeliveryTransportError(ReportingError):
    """Raised when the mail transport rejects or fails a send.

    Recovered locally by the delivery retry policy.
    """

    default_title = "Delivery Transport Error"

    def __init__(
        self,
        detail: str,
        type: str = "delivery-transport-error",
        error_code: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.error_code = error_code
        super().__init__(detail=detail, type=type, extra=extra)


class PermanentDeliveryFailure(ReportingError):
    """Raised once a delivery task has exhausted its attempts.

    Example:
            raise PermanentDeliveryFailure(
            detail="Delivery to client@example.com failed after 3 attempts",
            extra={"task_id": "...", "attempts": 3},
        )
    """

    default_title = "Delivery Failed"

    def __init__(
        self,
        detail: str,
        type: str = "delivery-permanent-failure",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail=detail, type=type, extra=extra)


class StorageError(ReportingError):
    """Raised when a document cannot be written to file storage."""

    default_title = "Storage Error"

    def __init__(
        self,
        detail: str,
        type: str = "storage-error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail=detail, type=type, extra=extra)
