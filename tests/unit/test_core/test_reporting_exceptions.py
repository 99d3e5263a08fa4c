"""Unit tests for reporting exceptions."""

from __future__ import annotations

import pytest

from task_reports.core.exceptions import (
    DeliveryTransportError,
    PermanentDeliveryFailure,
    ReportDataError,
    ReportingError,
    ReportRenderError,
    StorageError,
)


@pytest.mark.unit
class TestReportingError:
    """Test suite for the reporting exception hierarchy."""

    def test_to_dict_flattens_extra(self):
        exc = ReportDataError(detail="Malformed time spent 'abc'", extra={"task_id": 7})

        assert exc.to_dict() == {
            "type": "report-data-error",
            "title": "Invalid Report Data",
            "detail": "Malformed time spent 'abc'",
            "task_id": 7,
        }
        assert str(exc) == "Malformed time spent 'abc'"

    @pytest.mark.parametrize(
        ("exc_class", "type_"),
        [
            (ReportDataError, "report-data-error"),
            (ReportRenderError, "report-render-error"),
            (DeliveryTransportError, "delivery-transport-error"),
            (PermanentDeliveryFailure, "delivery-permanent-failure"),
            (StorageError, "storage-error"),
        ],
    )
    def test_subclasses_share_base(self, exc_class, type_):
        exc = exc_class(detail="boom")

        assert isinstance(exc, ReportingError)
        assert exc.type == type_
        assert exc.extra == {}

    def test_transport_error_keeps_code(self):
        exc = DeliveryTransportError(detail="Connection refused", error_code="SMTP_CONNECTION_ERROR")

        assert exc.error_code == "SMTP_CONNECTION_ERROR"
        assert exc.title == "Delivery Transport Error"
