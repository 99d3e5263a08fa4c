"""Byte storage for archived reports and failed delivery records."""

from __future__ import annotations

from .factory import get_storage_backend
from .local import LocalStorageBackend
from .protocol import StorageBackend, StoredObject, normalize_path
from .s3 import S3StorageBackend

__all__ = [
    "LocalStorageBackend",
    "S3StorageBackend",
    "StorageBackend",
    "StoredObject",
    "get_storage_backend",
    "normalize_path",
]
