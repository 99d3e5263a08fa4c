"""Console email provider for development.

Logs emails instead of sending them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
import uuid

from .base import BaseEmailProvider, EmailDeliveryResult

if TYPE_CHECKING:
    from task_reports.infra.email.schemas import EmailMessage

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 500


class ConsoleProvider(BaseEmailProvider):
    """Log a summary of each email and report success."""

    @property
    def provider_name(self) -> str:
        return "console"

    async def _do_send(self, message: EmailMessage) -> EmailDeliveryResult:
        message_id = f"console-{uuid.uuid4()}"
        from_email, from_name = self.sender(message)

        separator = "=" * 60
        lines = [
            "",
            separator,
            "EMAIL (Console Backend - Development Mode)",
            separator,
            f"Message-ID: {message_id}",
            f"From: {from_name} <{from_email}>" if from_name else f"From: {from_email}",
            f"To: {', '.join(message.to)}",
            f"Subject: {message.subject}",
        ]
        if message.cc:
            lines.append(f"Cc: {', '.join(message.cc)}")
        if message.attachments:
            lines.append(
                "Attachments: "
                + ", ".join(f"{a.filename} ({a.size_bytes} bytes)" for a in message.attachments)
            )
        lines.append(separator)

        body = message.body_text or message.body_html or ""
        lines.append(body[:_PREVIEW_CHARS])
        if len(body) > _PREVIEW_CHARS:
            lines.append(f"... ({len(body) - _PREVIEW_CHARS} more characters)")
        lines.extend([separator, ""])

        logger.info("\n".join(lines), extra={"message_id": message_id})

        return EmailDeliveryResult.success_result(
            message_id=message_id,
            provider=self.provider_name,
            recipients=message.all_recipients,
            metadata={"mode": "development"},
        )


__all__ = ["ConsoleProvider"]
