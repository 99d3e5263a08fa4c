"""Pre-validation cleanup for numeric environment values.

Deployment env files for the report scheduler often annotate values in
place, e.g. ``REPORT_DELIVERY_RETRY_DELAY_SECONDS=30  # seconds``. Some
loaders pass the annotation through, and pydantic would reject the value.
"""

from __future__ import annotations

from typing import Any


def strip_inline_comment(value: str) -> str:
    """Drop a trailing ``# ...`` annotation.

    A ``#`` counts as a comment only at the start or after whitespace, so a
    value such as ``abc#1`` is kept whole.
    """
    head, sep, _ = value.partition("#")
    if not sep:
        return value.strip()
    if not head:
        return ""
    if not head[-1].isspace():
        return value.strip()
    return head.strip()


def sanitize_inline_numeric(value: Any) -> Any:
    """Strip an inline annotation from string input; other types pass through."""
    if not isinstance(value, str):
        return value
    return strip_inline_comment(value) or value
