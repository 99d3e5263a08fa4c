"""S3-compatible storage backend using aioboto3.

Works with AWS S3, MinIO and LocalStack (set ``STORAGE_ENDPOINT``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from task_reports.core.exceptions import StorageError

from .protocol import StoredObject, normalize_path

if TYPE_CHECKING:
    from task_reports.core.settings.storage import StorageSettings

logger = logging.getLogger(__name__)


class S3StorageBackend:
    """Object storage on an S3 bucket.

    A client is opened per operation; report runs write a handful of
    objects a week, so pooling buys nothing.

    Example:
        storage = S3StorageBackend(StorageSettings(backend="s3", bucket="reports"))
        await storage.put("backups/report.pdf", pdf_bytes, "application/pdf")
    """

    def __init__(self, settings: StorageSettings, session: Any | None = None) -> None:
        if not settings.bucket:
            msg = "S3 backend requires STORAGE_BUCKET"
            raise StorageError(detail=msg, type="storage-not-configured")
        self.settings = settings
        self.bucket = settings.bucket
        self._session = session or aioboto3.Session()

    @property
    def backend_name(self) -> str:
        return "s3"

    def _client_config(self) -> dict[str, Any]:
        config: dict[str, Any] = {"region_name": self.settings.region}
        if self.settings.endpoint:
            config["endpoint_url"] = self.settings.endpoint
        if self.settings.access_key and self.settings.secret_key:
            config["aws_access_key_id"] = self.settings.access_key.get_secret_value()
            config["aws_secret_access_key"] = self.settings.secret_key.get_secret_value()
        return config

    def _key(self, path: str) -> str:
        key = normalize_path(path)
        prefix = self.settings.key_prefix.strip("/")
        return f"{prefix}/{key}" if prefix else key

    async def put(self, path: str, data: bytes, content_type: str) -> StoredObject:
        key = self._key(path)
        try:
            async with self._session.client("s3", **self._client_config()) as client:
                await client.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=data,
                    ContentType=content_type,
                )
        except (ClientError, BotoCoreError) as e:
            logger.exception("Failed to upload object to S3", extra={"key": key})
            raise StorageError(
                detail=f"Failed to upload {key}: {e}",
                extra={"key": key, "bucket": self.bucket},
            ) from e

        logger.info(
            "Object uploaded to S3",
            extra={"key": key, "bucket": self.bucket, "size_bytes": len(data)},
        )
        return StoredObject(
            path=normalize_path(path),
            size_bytes=len(data),
            content_type=content_type,
            location=f"s3://{self.bucket}/{key}",
        )

    async def get(self, path: str) -> bytes:
        key = self._key(path)
        try:
            async with self._session.client("s3", **self._client_config()) as client:
                response = await client.get_object(Bucket=self.bucket, Key=key)
                return bytes(await response["Body"].read())
        except (ClientError, BotoCoreError) as e:
            raise StorageError(
                detail=f"Failed to download {key}: {e}",
                extra={"key": key, "bucket": self.bucket},
            ) from e

    async def list(self, prefix: str = "") -> list[str]:
        root = self.settings.key_prefix.strip("/")
        strip = len(root) + 1 if root else 0
        key_prefix = self._key(prefix) if prefix.strip("/") else (f"{root}/" if root else "")

        paths: list[str] = []
        try:
            async with self._session.client("s3", **self._client_config()) as client:
                paginator = client.get_paginator("list_objects_v2")
                async for page in paginator.paginate(Bucket=self.bucket, Prefix=key_prefix):
                    paths.extend(item["Key"][strip:] for item in page.get("Contents", []))
        except (ClientError, BotoCoreError) as e:
            raise StorageError(
                detail=f"Failed to list objects with prefix {prefix}: {e}",
                extra={"prefix": prefix, "bucket": self.bucket},
            ) from e
        return sorted(paths)
