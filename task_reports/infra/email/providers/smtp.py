"""SMTP email provider using aiosmtplib.

Supports STARTTLS (587), implicit TLS (465) and plain SMTP (25), with
optional authentication. A send is a single attempt; retrying is the
delivery queue's job.
"""

from __future__ import annotations

from datetime import UTC, datetime
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import logging
import ssl
from typing import TYPE_CHECKING
import uuid

import aiosmtplib

from .base import BaseEmailProvider, EmailDeliveryResult

if TYPE_CHECKING:
    from task_reports.core.settings.email import EmailSettings
    from task_reports.infra.email.schemas import EmailMessage

logger = logging.getLogger(__name__)


class SMTPProvider(BaseEmailProvider):
    """SMTP email provider using native async aiosmtplib.

    Example:
        settings = EmailSettings(smtp_host="smtp.example.com", smtp_port=587)
        provider = SMTPProvider(settings)
        result = await provider.send(message)
    """

    def __init__(self, settings: EmailSettings) -> None:
        super().__init__(settings)
        if not settings.smtp_host:
            msg = "SMTP host is required for SMTP provider"
            raise ValueError(msg)

        logger.info(
            "SMTP provider initialized",
            extra={"smtp_url": settings.get_smtp_url()},
        )

    @property
    def provider_name(self) -> str:
        return "smtp"

    def _create_ssl_context(self) -> ssl.SSLContext | None:
        if not (self._settings.use_tls or self._settings.use_ssl):
            return None

        context = ssl.create_default_context()
        if not self._settings.validate_certs:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _client(self, timeout: float) -> aiosmtplib.SMTP:
        return aiosmtplib.SMTP(
            hostname=self._settings.smtp_host,
            port=self._settings.smtp_port,
            use_tls=self._settings.use_ssl,
            start_tls=self._settings.use_tls,
            tls_context=self._create_ssl_context(),
            timeout=timeout,
        )

    async def _do_send(self, message: EmailMessage) -> EmailDeliveryResult:
        mime_message = self._build_mime_message(message)
        message_id = mime_message["Message-ID"]

        try:
            smtp = self._client(self._settings.timeout)
            async with smtp:
                if self._settings.requires_auth:
                    await smtp.login(
                        self._settings.smtp_username,  # type: ignore[arg-type]
                        self._settings.smtp_password.get_secret_value(),  # type: ignore[union-attr]
                    )
                errors, _response = await smtp.send_message(mime_message)
        except aiosmtplib.SMTPAuthenticationError as e:
            return EmailDeliveryResult.failure_result(
                provider=self.provider_name,
                error=f"SMTP authentication failed: {e}",
                error_code="AUTH_FAILED",
                recipients_rejected=message.all_recipients,
            )
        except aiosmtplib.SMTPRecipientsRefused as e:
            return EmailDeliveryResult.failure_result(
                provider=self.provider_name,
                error=f"All recipients refused: {e}",
                error_code="RECIPIENTS_REFUSED",
                recipients_rejected=message.all_recipients,
            )
        except aiosmtplib.SMTPConnectError as e:
            return EmailDeliveryResult.failure_result(
                provider=self.provider_name,
                error=f"SMTP connection failed: {e}",
                error_code="CONNECTION_ERROR",
            )
        except aiosmtplib.SMTPException as e:
            return EmailDeliveryResult.failure_result(
                provider=self.provider_name,
                error=f"SMTP error: {e}",
                error_code="SMTP_ERROR",
            )

        recipients_rejected = list(errors.keys()) if errors else []
        recipients_accepted = [r for r in message.all_recipients if r not in recipients_rejected]

        if recipients_rejected:
            logger.warning(
                "Some SMTP recipients rejected",
                extra={
                    "message_id": message_id,
                    "rejected": recipients_rejected,
                    "errors": {k: str(v) for k, v in errors.items()},
                },
            )

        if not recipients_accepted:
            return EmailDeliveryResult.failure_result(
                provider=self.provider_name,
                error="No recipients accepted",
                error_code="RECIPIENTS_REFUSED",
                recipients_rejected=recipients_rejected,
            )

        return EmailDeliveryResult(
            success=True,
            message_id=message_id,
            provider=self.provider_name,
            recipients_accepted=recipients_accepted,
            recipients_rejected=recipients_rejected,
            metadata={"host": self._settings.smtp_host, "port": self._settings.smtp_port},
        )

    async def _do_health_check(self) -> bool:
        try:
            smtp = self._client(5.0)
            await smtp.connect()
            await smtp.quit()
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.debug("SMTP health check failed: %s", e)
            return False
        return True

    def _build_mime_message(self, message: EmailMessage) -> MIMEMultipart:
        mime_msg = MIMEMultipart("mixed")

        from_email, from_name = self.sender(message)
        mime_msg["From"] = f"{from_name} <{from_email}>" if from_name else from_email
        mime_msg["To"] = ", ".join(message.to)
        if message.cc:
            mime_msg["Cc"] = ", ".join(message.cc)

        mime_msg["Subject"] = message.subject
        mime_msg["Message-ID"] = f"<{uuid.uuid4()}@{self._settings.smtp_host}>"
        mime_msg["Date"] = datetime.now(UTC).strftime("%a, %d %b %Y %H:%M:%S +0000")

        reply_to = message.reply_to or self._settings.reply_to
        if reply_to:
            mime_msg["Reply-To"] = str(reply_to)

        if message.priority.value == "high":
            mime_msg["X-Priority"] = "1"
        elif message.priority.value == "low":
            mime_msg["X-Priority"] = "5"

        for key, value in message.headers.items():
            mime_msg[key] = value

        if message.body_text and message.body_html:
            alt_part = MIMEMultipart("alternative")
            alt_part.attach(MIMEText(message.body_text, "plain", "utf-8"))
            alt_part.attach(MIMEText(message.body_html, "html", "utf-8"))
            mime_msg.attach(alt_part)
        elif message.body_html:
            mime_msg.attach(MIMEText(message.body_html, "html", "utf-8"))
        elif message.body_text:
            mime_msg.attach(MIMEText(message.body_text, "plain", "utf-8"))

        for attachment in message.attachments:
            _maintype, _, subtype = attachment.content_type.partition("/")
            part = MIMEApplication(attachment.content, _subtype=subtype or "octet-stream")
            part["Content-Disposition"] = f'attachment; filename="{attachment.filename}"'
            mime_msg.attach(part)

        return mime_msg


__all__ = ["SMTPProvider"]
