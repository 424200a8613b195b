"""Filesystem backend implementation for blob storage."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import BinaryIO

from filestore.core.storage.blob import (
    BlobMetadata,
    BlobNotFoundError,
    BlobStorageBackend,
    BlobStorageError,
)

logger = logging.getLogger(__name__)


class FilesystemBackend(BlobStorageBackend):
    """Filesystem implementation of blob storage backend.

    Stores blobs as files on the local filesystem with metadata stored
    in accompanying JSON files.
    """

    def __init__(self, base_path: str | Path):
        """Initialize filesystem backend.

        Args:
            base_path: Base directory path for storing blobs
        """
        self._base_path = Path(base_path)
        self._base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized filesystem backend at: {self._base_path}")

    def _get_blob_path(self, key: str) -> Path:
        """Get the full path for a blob file."""
        normalized_key = Path(key.lstrip("/")).as_posix()
        return self._base_path / normalized_key

    def _get_metadata_path(self, key: str) -> Path:
        """Get the path for metadata file associated with a blob."""
        blob_path = self._get_blob_path(key)
        return blob_path.with_suffix(blob_path.suffix + ".meta")

    def _save_metadata(
        self,
        key: str,
        size: int,
        content_type: str | None = None,
        custom_metadata: dict[str, str] | None = None,
    ) -> None:
        """Save metadata for a blob."""
        metadata = {
            "key": key,
            "size": size,
            "content_type": content_type or "application/octet-stream",
            "last_modified": datetime.now(UTC).isoformat(),
            "custom_metadata": custom_metadata or {},
        }

        metadata_path = self._get_metadata_path(key)
        metadata_path.parent.mkdir(parents=True, exist_ok=True)

        with open(metadata_path, "w") as f:
            json.dump(metadata, f, indent=2)

    def _load_metadata(self, key: str) -> dict:
        """Load metadata for a blob."""
        blob_path = self._get_blob_path(key)
        if not blob_path.exists():
            raise BlobNotFoundError(f"Blob not found: {key}")

        metadata_path = self._get_metadata_path(key)
        if not metadata_path.exists():
            # Return basic metadata if meta file doesn't exist
            stat = blob_path.stat()
            return {
                "key": key,
                "size": stat.st_size,
                "content_type": "application/octet-stream",
                "last_modified": datetime.fromtimestamp(stat.st_mtime, UTC).isoformat(),
                "custom_metadata": {},
            }

        with open(metadata_path) as f:
            return json.load(f)

    def put(
        self,
        key: str,
        data: bytes | BinaryIO,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Store a blob in the filesystem."""
        blob_path = self._get_blob_path(key)
        try:
            blob_path.parent.mkdir(parents=True, exist_ok=True)

            if isinstance(data, bytes):
                blob_path.write_bytes(data)
                size = len(data)
            elif hasattr(data, "read"):
                size = 0
                with open(blob_path, "wb") as f:
                    while chunk := data.read(8192):
                        f.write(chunk)
                        size += len(chunk)
            else:
                raise BlobStorageError(f"Invalid data type for key {key}")

            self._save_metadata(key, size, content_type, metadata)

            # Use file modification time as etag equivalent
            etag = str(int(blob_path.stat().st_mtime * 1000000))
            logger.info(f"Stored blob: {key} ({size} bytes)")
            return etag

        except BlobStorageError:
            self._discard_partial(key)
            raise
        except Exception as e:
            self._discard_partial(key)
            raise BlobStorageError(f"Failed to store blob {key}: {e}") from e

    def _discard_partial(self, key: str) -> None:
        """Remove whatever an interrupted put left behind."""
        for path in (self._get_blob_path(key), self._get_metadata_path(key)):
            path.unlink(missing_ok=True)

    def get(self, key: str) -> bytes:
        """Retrieve a blob from the filesystem."""
        blob_path = self._get_blob_path(key)
        if not blob_path.exists():
            raise BlobNotFoundError(f"Blob not found: {key}")

        try:
            return blob_path.read_bytes()
        except Exception as e:
            raise BlobStorageError(f"Failed to retrieve blob {key}: {e}") from e

    def delete(self, key: str) -> None:
        """Delete a blob from the filesystem."""
        blob_path = self._get_blob_path(key)
        if not blob_path.exists():
            raise BlobNotFoundError(f"Blob not found: {key}")

        try:
            blob_path.unlink()
            self._get_metadata_path(key).unlink(missing_ok=True)
            self._cleanup_empty_dirs(blob_path.parent)
            logger.info(f"Deleted blob: {key}")

        except Exception as e:
            raise BlobStorageError(f"Failed to delete blob {key}: {e}") from e

    def _cleanup_empty_dirs(self, path: Path) -> None:
        """Remove empty parent directories up to base_path."""
        try:
            while path != self._base_path and path.exists():
                if not any(path.iterdir()):
                    path.rmdir()
                    path = path.parent
                else:
                    break
        except OSError as e:
            logger.debug(f"Skipped directory cleanup at {path}: {e}")

    def exists(self, key: str) -> bool:
        """Check if a blob exists in the filesystem."""
        return self._get_blob_path(key).is_file()

    def get_metadata(self, key: str) -> BlobMetadata:
        """Get metadata for a blob in the filesystem."""
        metadata_dict = self._load_metadata(key)

        try:
            return BlobMetadata(
                key=metadata_dict["key"],
                size=metadata_dict["size"],
                content_type=metadata_dict.get("content_type"),
                last_modified=datetime.fromisoformat(metadata_dict["last_modified"]),
                etag=None,  # Filesystem doesn't have etags
                custom_metadata=metadata_dict.get("custom_metadata", {}),
            )
        except Exception as e:
            raise BlobStorageError(f"Failed to get metadata for {key}: {e}") from e

    def generate_presigned_url(
        self, key: str, expiration: timedelta = timedelta(hours=1), method: str = "GET"
    ) -> str:
        """Generate a presigned URL for the filesystem.

        Note: This returns a file:// URL since filesystem storage doesn't
        support HTTP-based presigned URLs.
        """
        blob_path = self._get_blob_path(key)

        if not blob_path.exists():
            raise BlobNotFoundError(f"Blob not found: {key}")

        return blob_path.absolute().as_uri()
