"""Outbound email: message models, body templates and providers."""

from __future__ import annotations

from .providers import (
    BaseEmailProvider,
    EmailDeliveryResult,
    EmailProvider,
    get_email_provider,
)
from .schemas import EmailAttachment, EmailMessage, EmailPriority
from .templates import EmailTemplateRenderer, TemplateNotFoundError, html_to_text

__all__ = [
    "BaseEmailProvider",
    "EmailAttachment",
    "EmailDeliveryResult",
    "EmailMessage",
    "EmailPriority",
    "EmailProvider",
    "EmailTemplateRenderer",
    "TemplateNotFoundError",
    "get_email_provider",
    "html_to_text",
]
