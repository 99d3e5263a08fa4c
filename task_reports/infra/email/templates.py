"""Email body rendering with Jinja2.

Report emails are HTML templates under ``templates/email``; a plain text
alternative is derived from the rendered HTML.
"""

from __future__ import annotations

from html import unescape
import logging
from pathlib import Path
import re
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from task_reports.core.exceptions import ReportRenderError

if TYPE_CHECKING:
    from task_reports.core.settings.email import EmailSettings

logger = logging.getLogger(__name__)

PACKAGE_ROOT = Path(__file__).resolve().parent.parent.parent


class TemplateNotFoundError(ReportRenderError):
    """Raised when an email template cannot be found."""

    default_title = "Email Template Not Found"


class EmailTemplateRenderer:
    """Jinja2-based email template renderer.

    Example:
        renderer = EmailTemplateRenderer(settings)
        html, text = renderer.render("client_report", client_name="Jane Doe")
    """

    def __init__(self, settings: EmailSettings) -> None:
        self.template_dir = PACKAGE_ROOT / settings.template_dir
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["html_to_text"] = html_to_text
        self.default_context = settings.default_template_context or {}

        logger.debug(
            "Email template renderer initialized",
            extra={"template_dir": str(self.template_dir)},
        )

    def render(self, template_name: str, **context: Any) -> tuple[str, str]:
        """Render ``<template_name>.html`` and derive its text version.

        Returns:
            Tuple of (html_content, text_content).

        Raises:
            TemplateNotFoundError: If the HTML template does not exist.
        """
        full_context = {**self.default_context, **context}
        try:
            template = self.env.get_template(f"{template_name}.html")
        except TemplateNotFound as exc:
            raise TemplateNotFoundError(
                detail=f"No template found for: {template_name}",
                extra={"template_dir": str(self.template_dir)},
            ) from exc

        html_content = template.render(**full_context)
        return html_content, html_to_text(html_content)

    def template_exists(self, template_name: str) -> bool:
        try:
            self.env.get_template(f"{template_name}.html")
        except TemplateNotFound:
            return False
        return True


def html_to_text(html: str) -> str:
    """Convert an HTML email body to plain text.

    Keeps link targets, turns block elements and ``<br>`` into newlines and
    collapses whitespace.
    """
    html = re.sub(
        r'<a[^>]+href=["\']([^"\']+)["\'][^>]*>([^<]+)</a>',
        r"\2 (\1)",
        html,
        flags=re.IGNORECASE,
    )
    html = re.sub(r"<(style|head)[^>]*>.*?</\1>", "", html, flags=re.IGNORECASE | re.DOTALL)
    html = re.sub(r"</?(p|div|h[1-6]|tr)[^>]*>", "\n\n", html, flags=re.IGNORECASE)
    html = re.sub(r"<br\s*/?>", "\n", html, flags=re.IGNORECASE)
    html = re.sub(r"<li[^>]*>", "\n  * ", html, flags=re.IGNORECASE)
    html = re.sub(r"<[^>]+>", "", html)

    text = unescape(html)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n\s*\n", "\n\n", text)
    return text.strip()
