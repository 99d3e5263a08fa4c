"""Storage backend selection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .local import LocalStorageBackend
from .s3 import S3StorageBackend

if TYPE_CHECKING:
    from task_reports.core.settings.storage import StorageSettings

    from .protocol import StorageBackend


def get_storage_backend(settings: StorageSettings) -> StorageBackend:
    """Build the backend named by ``settings.backend``."""
    if settings.backend == "s3":
        return S3StorageBackend(settings)
    return LocalStorageBackend(settings.local_root)
