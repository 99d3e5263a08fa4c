"""Local filesystem storage backend.

Filesystem calls run in a worker thread so the event loop never blocks.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from task_reports.core.exceptions import StorageError

from .protocol import StoredObject, normalize_path

logger = logging.getLogger(__name__)


class LocalStorageBackend:
    """Store objects as files under a root directory.

    Example:
        storage = LocalStorageBackend(Path("/var/lib/task-reports"))
        await storage.put("backups/report.pdf", pdf_bytes, "application/pdf")
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    @property
    def backend_name(self) -> str:
        return "local"

    def _resolve(self, path: str) -> tuple[str, Path]:
        try:
            key = normalize_path(path)
        except ValueError as e:
            raise StorageError(detail=str(e), extra={"path": path}) from e
        return key, self.root / key

    async def put(self, path: str, data: bytes, content_type: str) -> StoredObject:
        key, target = self._resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp = target.with_name(f".{target.name}.tmp")
            tmp.write_bytes(data)
            tmp.replace(target)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            logger.exception("Failed to write object", extra={"path": key})
            raise StorageError(
                detail=f"Failed to write {key}: {e}",
                extra={"path": key, "backend": self.backend_name},
            ) from e

        logger.info(
            "Object stored",
            extra={"path": key, "size_bytes": len(data), "backend": self.backend_name},
        )
        return StoredObject(
            path=key,
            size_bytes=len(data),
            content_type=content_type,
            location=str(target),
        )

    async def get(self, path: str) -> bytes:
        key, target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError as e:
            raise StorageError(
                detail=f"Object not found: {key}",
                type="storage-not-found",
                extra={"path": key},
            ) from e

    async def list(self, prefix: str = "") -> list[str]:
        base = self.root / normalize_path(prefix) if prefix.strip("/") else self.root

        def _scan() -> list[str]:
            if not base.exists():
                return []
            return sorted(
                p.relative_to(self.root).as_posix()
                for p in base.rglob("*")
                if p.is_file() and not p.name.startswith(".")
            )

        return await asyncio.to_thread(_scan)
