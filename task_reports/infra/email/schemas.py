"""Email message models.

Defines the structure of outbound report emails and their attachments.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, EmailStr, Field


class EmailPriority(StrEnum):
    """Email priority levels."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class EmailAttachment(BaseModel):
    """In-memory email attachment.

    Example:
        attachment = EmailAttachment(
            filename="tasks_jane-doe_2025-01-06_08-00-00.pdf",
            content=pdf_bytes,
            content_type="application/pdf",
        )
    """

    filename: str = Field(min_length=1, max_length=255, description="Attachment filename")
    content: bytes = Field(description="Attachment content")
    content_type: str = Field(
        default="application/octet-stream",
        description="MIME content type",
    )

    @property
    def size_bytes(self) -> int:
        return len(self.content)


class EmailMessage(BaseModel):
    """Email message ready for a provider.

    Example:
        message = EmailMessage(
            to=["client@example.com"],
            subject="Your Weekly Tasks Report",
            body_html="<p>Please find attached...</p>",
            attachments=[attachment],
        )
    """

    # Recipients
    to: list[EmailStr] = Field(min_length=1, description="Primary recipients")
    cc: list[EmailStr] = Field(default_factory=list, description="CC recipients")
    bcc: list[EmailStr] = Field(default_factory=list, description="BCC recipients")
    reply_to: EmailStr | None = Field(default=None, description="Reply-to address")

    # Sender (optional, provider falls back to settings)
    from_email: EmailStr | None = Field(default=None, description="Sender email address")
    from_name: str | None = Field(default=None, max_length=100, description="Sender display name")

    # Content
    subject: str = Field(min_length=1, max_length=500, description="Email subject line")
    body_text: str | None = Field(default=None, description="Plain text body")
    body_html: str | None = Field(default=None, description="HTML body")
    attachments: list[EmailAttachment] = Field(default_factory=list)

    # Metadata
    priority: EmailPriority = Field(default=EmailPriority.NORMAL)
    headers: dict[str, str] = Field(default_factory=dict, description="Additional email headers")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Tracking metadata")

    def model_post_init(self, __context: Any) -> None:
        """Validate that at least one body type is provided."""
        if self.body_text is None and self.body_html is None:
            msg = "Either body_text or body_html must be provided"
            raise ValueError(msg)

    @property
    def all_recipients(self) -> list[str]:
        """Get all recipients (to, cc, bcc)."""
        return list(self.to) + list(self.cc) + list(self.bcc)
