"""Blob storage abstraction for uploaded file payloads.

Provides the backend interface for storing raw bytes (MinIO, S3, local
filesystem, etc.) along with the blob metadata types and exceptions. The
adapter used by the orchestrators lives in ``filestore.core.storage.store``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, BinaryIO

LOCATOR_PRESIGNED = "presigned"
LOCATOR_NONE = "none"
LOCATOR_MODES = (LOCATOR_PRESIGNED, LOCATOR_NONE)


@dataclass
class BlobMetadata:
    """Metadata for a stored blob."""

    key: str
    size: int
    content_type: str | None
    last_modified: datetime
    etag: str | None
    custom_metadata: dict[str, str]

    def to_dict(self, bucket: str | None = None) -> dict[str, Any]:
        """Return the backend-native metadata mapping for this blob.

        Fields the backend could not provide are left as ``None``; the
        metadata synthesizer drops them before anything is persisted.
        """
        return {
            "bucket": bucket,
            "full_path": self.key,
            "name": self.key.rsplit("/", 1)[-1],
            "size": self.size,
            "content_type": self.content_type,
            "md5_hash": self.etag,
            "updated": self.last_modified.isoformat() if self.last_modified else None,
            "custom_metadata": dict(self.custom_metadata) if self.custom_metadata else None,
        }


@dataclass(frozen=True)
class BlobUploadMetadata:
    """Backend-native metadata passed along with a blob upload."""

    content_type: str | None = None
    custom_metadata: dict[str, str] = field(default_factory=dict)


class BlobStorageBackend(ABC):
    """Abstract base class for blob storage backends.

    This interface provides S3-like operations for storing and retrieving
    binary data (files, images, documents, etc.).
    """

    @abstractmethod
    def put(
        self,
        key: str,
        data: bytes | BinaryIO,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Store a blob.

        Args:
            key: Object key (path) for the blob
            data: Binary data or file-like object
            content_type: MIME type of the content
            metadata: Custom metadata key-value pairs

        Returns:
            ETag or version ID of the stored blob
        """
        pass

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Retrieve a blob.

        Raises:
            BlobNotFoundError: If the blob doesn't exist
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a blob.

        Args:
            key: Object key to delete

        Raises:
            BlobNotFoundError: If the blob doesn't exist
        """
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if a blob exists."""
        pass

    @abstractmethod
    def get_metadata(self, key: str) -> BlobMetadata:
        """Get metadata for a blob without downloading it.

        Raises:
            BlobNotFoundError: If the blob doesn't exist
        """
        pass

    @abstractmethod
    def generate_presigned_url(
        self, key: str, expiration: timedelta = timedelta(hours=1), method: str = "GET"
    ) -> str:
        """Generate a presigned URL for temporary access.

        Args:
            key: Object key
            expiration: How long the URL should be valid
            method: HTTP method (GET, PUT, DELETE)

        Returns:
            Presigned URL string
        """
        pass


# Custom exceptions


class BlobStorageError(Exception):
    """Base exception for blob storage errors."""

    pass


class BlobNotFoundError(BlobStorageError):
    """Raised when a blob is not found."""

    pass


class BlobStorageConnectionError(BlobStorageError):
    """Raised when connection to storage backend fails."""

    pass


class InvalidUploadSourceError(BlobStorageError):
    """Raised when an upload source cannot be read by any transfer method."""

    pass


class UploadCancelledError(BlobStorageError):
    """Raised when a transfer is cancelled before it completes."""

    pass
