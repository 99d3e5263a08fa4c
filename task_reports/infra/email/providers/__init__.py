"""Email provider implementations."""

from __future__ import annotations

from .base import BaseEmailProvider, EmailDeliveryResult, EmailProvider
from .console import ConsoleProvider
from .factory import get_email_provider
from .file import FileProvider
from .smtp import SMTPProvider

__all__ = [
    "BaseEmailProvider",
    "ConsoleProvider",
    "EmailDeliveryResult",
    "EmailProvider",
    "FileProvider",
    "SMTPProvider",
    "get_email_provider",
]
