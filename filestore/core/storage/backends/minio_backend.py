"""MinIO backend implementation for blob storage."""

from __future__ import annotations

import logging
from datetime import timedelta
from io import BytesIO
from typing import BinaryIO

from minio import Minio
from minio.error import S3Error

from filestore.core.storage.blob import (
    BlobMetadata,
    BlobNotFoundError,
    BlobStorageBackend,
    BlobStorageConnectionError,
    BlobStorageError,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = ("NoSuchKey", "NoSuchObject")


class MinIOBackend(BlobStorageBackend):
    """MinIO implementation of blob storage backend."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        secure: bool = True,
        region: str | None = None,
        prefix: str | None = None,
    ):
        """Initialize MinIO backend.

        Args:
            endpoint: MinIO server endpoint (e.g., 'localhost:9000')
            access_key: Access key (user ID)
            secret_key: Secret key (password)
            bucket: Bucket name to use
            secure: Use HTTPS if True
            region: Optional region name
            prefix: Optional prefix to prepend to all keys
        """
        self._bucket = bucket
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""

        try:
            self._client = Minio(
                endpoint=endpoint,
                access_key=access_key,
                secret_key=secret_key,
                secure=secure,
                region=region,
            )

            # Ensure bucket exists
            if not self._client.bucket_exists(bucket):
                self._client.make_bucket(bucket, location=region)
                logger.info(f"Created bucket: {bucket}")
            else:
                logger.info(f"Using existing bucket: {bucket}")

        except S3Error as e:
            raise BlobStorageConnectionError(f"Failed to connect to MinIO: {e}") from e

    @property
    def bucket(self) -> str:
        return self._bucket

    def _full_key(self, key: str) -> str:
        """Prepend prefix to key."""
        return f"{self._prefix}{key.lstrip('/')}"

    def put(
        self,
        key: str,
        data: bytes | BinaryIO,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Store a blob in MinIO."""
        try:
            full_key = self._full_key(key)

            if isinstance(data, bytes):
                stream = BytesIO(data)
                length = len(data)
            else:
                # Get current position and seek to end to get size
                start_pos = data.tell()
                data.seek(0, 2)
                length = data.tell() - start_pos
                data.seek(start_pos)
                stream = data

            result = self._client.put_object(
                bucket_name=self._bucket,
                object_name=full_key,
                data=stream,
                length=length,
                content_type=content_type or "application/octet-stream",
                metadata=metadata,
            )

            logger.info(f"Stored blob: {key} (etag: {result.etag})")
            return result.etag

        except S3Error as e:
            raise BlobStorageError(f"Failed to store blob {key}: {e}") from e

    def get(self, key: str) -> bytes:
        """Retrieve a blob from MinIO."""
        try:
            response = self._client.get_object(self._bucket, self._full_key(key))
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()

        except S3Error as e:
            if e.code in _NOT_FOUND_CODES:
                raise BlobNotFoundError(f"Blob not found: {key}") from e
            raise BlobStorageError(f"Failed to retrieve blob {key}: {e}") from e

    def delete(self, key: str) -> None:
        """Delete a blob from MinIO.

        S3 deletes are idempotent, so the object is looked up first to report
        missing blobs as BlobNotFoundError.
        """
        try:
            full_key = self._full_key(key)
            self._client.stat_object(self._bucket, full_key)
            self._client.remove_object(self._bucket, full_key)
            logger.info(f"Deleted blob: {key}")

        except S3Error as e:
            if e.code in _NOT_FOUND_CODES:
                raise BlobNotFoundError(f"Blob not found: {key}") from e
            raise BlobStorageError(f"Failed to delete blob {key}: {e}") from e

    def exists(self, key: str) -> bool:
        """Check if a blob exists in MinIO."""
        try:
            self._client.stat_object(self._bucket, self._full_key(key))
            return True
        except S3Error as e:
            if e.code in _NOT_FOUND_CODES:
                return False
            raise BlobStorageError(f"Failed to check blob existence {key}: {e}") from e

    def get_metadata(self, key: str) -> BlobMetadata:
        """Get metadata for a blob in MinIO."""
        try:
            stat = self._client.stat_object(self._bucket, self._full_key(key))

            return BlobMetadata(
                key=key,
                size=stat.size,
                content_type=stat.content_type,
                last_modified=stat.last_modified,
                etag=stat.etag,
                custom_metadata=dict(stat.metadata or {}),
            )

        except S3Error as e:
            if e.code in _NOT_FOUND_CODES:
                raise BlobNotFoundError(f"Blob not found: {key}") from e
            raise BlobStorageError(f"Failed to get metadata for {key}: {e}") from e

    def generate_presigned_url(
        self, key: str, expiration: timedelta = timedelta(hours=1), method: str = "GET"
    ) -> str:
        """Generate a presigned URL for MinIO."""
        try:
            return self._client.get_presigned_url(
                method, self._bucket, self._full_key(key), expires=expiration
            )

        except S3Error as e:
            raise BlobStorageError(f"Failed to generate presigned URL for {key}: {e}") from e
