"""Unit tests for email providers and templates."""

from __future__ import annotations

import json
import logging

import pytest

from task_reports.core.settings import EmailSettings
from task_reports.infra.email import EmailAttachment, EmailMessage
from task_reports.infra.email.providers import (
    BaseEmailProvider,
    ConsoleProvider,
    EmailDeliveryResult,
    FileProvider,
    SMTPProvider,
    get_email_provider,
)
from task_reports.infra.email.templates import (
    EmailTemplateRenderer,
    TemplateNotFoundError,
    html_to_text,
)


@pytest.fixture
def message() -> EmailMessage:
    return EmailMessage(
        to=["jane@example.com"],
        subject="Your Weekly Tasks Report",
        body_html="<p>Dear Jane,</p>",
        attachments=[EmailAttachment(filename="tasks_jane-doe.pdf", content=b"%PDF-1.4")],
    )


@pytest.mark.unit
class TestProviderFactory:
    """Test suite for get_email_provider."""

    def test_disabled_falls_back_to_console(self):
        provider = get_email_provider(EmailSettings(enabled=False, backend="smtp"))

        assert isinstance(provider, ConsoleProvider)

    @pytest.mark.parametrize(
        ("backend", "provider_class"),
        [("smtp", SMTPProvider), ("console", ConsoleProvider), ("file", FileProvider)],
    )
    def test_enabled_backends(self, backend, provider_class):
        provider = get_email_provider(EmailSettings(enabled=True, backend=backend))

        assert isinstance(provider, provider_class)
        assert provider.provider_name == backend


@pytest.mark.unit
class TestConsoleProvider:
    """Test suite for ConsoleProvider."""

    async def test_logs_and_succeeds(self, message, caplog):
        caplog.set_level(logging.INFO)

        result = await ConsoleProvider(EmailSettings()).send(message)

        assert result.success is True
        assert result.recipients_accepted == ["jane@example.com"]
        assert result.duration_ms is not None
        assert any("tasks_jane-doe.pdf (8 bytes)" in r.getMessage() for r in caplog.records)


@pytest.mark.unit
class TestFileProvider:
    """Test suite for FileProvider."""

    async def test_writes_json_and_attachments(self, message, tmp_path):
        provider = FileProvider(EmailSettings(file_path=str(tmp_path)))

        result = await provider.send(message)

        assert result.success is True
        email_file = tmp_path / next(p.name for p in tmp_path.glob("*.json"))
        data = json.loads(email_file.read_text(encoding="utf-8"))
        assert data["to"] == ["jane@example.com"]
        assert data["from_email"] == "reports@example.com"
        assert data["attachments"][0]["size_bytes"] == 8
        assert (tmp_path / email_file.stem / "tasks_jane-doe.pdf").read_bytes() == b"%PDF-1.4"

    async def test_health_check(self, tmp_path):
        assert await FileProvider(EmailSettings(file_path=str(tmp_path / "out"))).health_check() is True


@pytest.mark.unit
class TestBaseEmailProvider:
    """Test suite for BaseEmailProvider error handling."""

    async def test_unexpected_exception_becomes_failure(self, message):
        class Exploding(BaseEmailProvider):
            @property
            def provider_name(self) -> str:
                return "exploding"

            async def _do_send(self, message):
                raise RuntimeError("socket closed")

        result = await Exploding(EmailSettings()).send(message)

        assert result.success is False
        assert result.error == "socket closed"
        assert result.error_code == "UNEXPECTED_ERROR"

    def test_failure_result_always_has_error(self):
        result = EmailDeliveryResult(success=False, message_id=None, provider="smtp")

        assert result.error == "Unknown error"


@pytest.mark.unit
class TestEmailTemplateRenderer:
    """Test suite for EmailTemplateRenderer."""

    def test_render_client_report(self):
        html, text = EmailTemplateRenderer(EmailSettings()).render(
            "client_report",
            client_first_name="Jane",
            total_formatted="4 hrs 15 mins",
            period_label="2025-01-06 to 2025-01-12",
            signature_name="Pat Jones",
            signature_title=None,
            signature_lines=["+1 555 0100"],
        )

        assert "Dear Jane," in html
        assert "Hours used so far / Hours booked: 4 hrs 15 mins" in text
        assert "+1 555 0100" in text
        assert "<p>" not in text

    def test_missing_template(self):
        renderer = EmailTemplateRenderer(EmailSettings())

        assert renderer.template_exists("combined_report") is True
        assert renderer.template_exists("nope") is False
        with pytest.raises(TemplateNotFoundError):
            renderer.render("nope")

    def test_html_to_text_keeps_links(self):
        text = html_to_text('<p>See <a href="https://example.com/r">the report</a></p><br>Thanks &amp; bye')

        assert "the report (https://example.com/r)" in text
        assert "Thanks & bye" in text
