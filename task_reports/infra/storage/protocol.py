"""Storage backend protocol and normalized data structures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class StoredObject:
    """Result of a put operation.

    Attributes:
        path: Normalized object path/key relative to the storage root
        size_bytes: Size of the stored payload
        content_type: MIME type recorded with the object
        location: Backend-specific location (file path or s3:// URI)
    """

    path: str
    size_bytes: int
    content_type: str
    location: str


@runtime_checkable
class StorageBackend(Protocol):
    """Put-by-path byte store used for archives and failure records.

    Example:
        stored = await storage.put("backups/weekly_tasks_all.pdf", pdf, "application/pdf")
    """

    @property
    def backend_name(self) -> str:
        """Name of the backend (e.g. 'local', 's3')."""
        ...

    async def put(self, path: str, data: bytes, content_type: str) -> StoredObject:
        """Store ``data`` at ``path``, replacing any existing object."""
        ...

    async def get(self, path: str) -> bytes:
        """Return the bytes stored at ``path``."""
        ...

    async def list(self, prefix: str = "") -> list[str]:
        """List object paths under ``prefix`` in lexical order."""
        ...


def normalize_path(path: str) -> str:
    """Strip leading slashes and reject parent-directory segments."""
    cleaned = path.replace("\\", "/").lstrip("/")
    parts = [part for part in cleaned.split("/") if part not in ("", ".")]
    if not parts or ".." in parts:
        msg = f"Invalid storage path: {path!r}"
        raise ValueError(msg)
    return "/".join(parts)
