"""Email provider selection.

Usage:
    provider = get_email_provider(get_email_settings())
    result = await provider.send(message)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .console import ConsoleProvider
from .file import FileProvider
from .smtp import SMTPProvider

if TYPE_CHECKING:
    from task_reports.core.settings.email import EmailSettings

    from .base import BaseEmailProvider

logger = logging.getLogger(__name__)

PROVIDERS: dict[str, type[BaseEmailProvider]] = {
    "smtp": SMTPProvider,
    "console": ConsoleProvider,
    "file": FileProvider,
}


def get_email_provider(settings: EmailSettings) -> BaseEmailProvider:
    """Build the provider named by ``settings.backend``.

    A disabled email configuration falls back to the console provider so
    report runs in development never reach a real mail server.
    """
    backend = settings.backend if settings.enabled else "console"
    if not settings.enabled:
        logger.info("Email disabled, using console provider")

    try:
        provider_class = PROVIDERS[backend]
    except KeyError:
        msg = f"Unknown email backend: {backend}. Available: {', '.join(sorted(PROVIDERS))}"
        raise ValueError(msg) from None
    return provider_class(settings)
