"""File email provider for testing.

Writes each email as a JSON document, with attachments stored next to it.

File layout::

    <file_path>/<timestamp>_<message_id>.json
    <file_path>/<timestamp>_<message_id>/<attachment filename>
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any
import uuid

from .base import BaseEmailProvider, EmailDeliveryResult

if TYPE_CHECKING:
    from task_reports.core.settings.email import EmailSettings
    from task_reports.infra.email.schemas import EmailMessage

logger = logging.getLogger(__name__)


class FileProvider(BaseEmailProvider):
    """Write emails to ``EmailSettings.file_path``."""

    def __init__(self, settings: EmailSettings) -> None:
        super().__init__(settings)
        self._output_dir = Path(settings.file_path)

    @property
    def provider_name(self) -> str:
        return "file"

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    async def _do_send(self, message: EmailMessage) -> EmailDeliveryResult:
        message_id = f"file-{uuid.uuid4()}"
        stem = f"{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}_{message_id}"
        from_email, from_name = self.sender(message)

        email_data: dict[str, Any] = {
            "message_id": message_id,
            "timestamp": datetime.now(UTC).isoformat(),
            "provider": self.provider_name,
            "from_email": from_email,
            "from_name": from_name,
            "to": list(message.to),
            "cc": list(message.cc),
            "bcc": list(message.bcc),
            "reply_to": message.reply_to or self._settings.reply_to,
            "subject": message.subject,
            "body_text": message.body_text,
            "body_html": message.body_html,
            "headers": message.headers,
            "metadata": message.metadata,
            "attachments": [
                {
                    "filename": a.filename,
                    "content_type": a.content_type,
                    "size_bytes": a.size_bytes,
                }
                for a in message.attachments
            ],
        }

        try:
            filepath = await asyncio.to_thread(self._write, stem, email_data, message)
        except OSError as e:
            return EmailDeliveryResult.failure_result(
                provider=self.provider_name,
                error=f"Failed to write email to {self._output_dir}: {e}",
                error_code="FILE_WRITE_ERROR",
            )

        return EmailDeliveryResult.success_result(
            message_id=message_id,
            provider=self.provider_name,
            recipients=message.all_recipients,
            metadata={"filepath": str(filepath)},
        )

    def _write(self, stem: str, email_data: dict[str, Any], message: EmailMessage) -> Path:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        filepath = self._output_dir / f"{stem}.json"
        filepath.write_text(json.dumps(email_data, indent=2, default=str), encoding="utf-8")

        if message.attachments:
            attachment_dir = self._output_dir / stem
            attachment_dir.mkdir(exist_ok=True)
            for attachment in message.attachments:
                (attachment_dir / Path(attachment.filename).name).write_bytes(attachment.content)
        return filepath

    async def _do_health_check(self) -> bool:
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            probe = self._output_dir / ".health_check"
            probe.touch()
            probe.unlink()
        except OSError as e:
            logger.debug("File provider health check failed: %s", e)
            return False
        return True


__all__ = ["FileProvider"]
