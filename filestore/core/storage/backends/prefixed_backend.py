"""Internal prefix wrapper for blob backends.

This module is for internal use by the registry only and should not be imported directly.
"""

from __future__ import annotations

from datetime import timedelta
from typing import BinaryIO

from filestore.core.storage.blob import BlobMetadata, BlobStorageBackend


class PrefixedBlobBackend(BlobStorageBackend):
    """Wrapper that adds a prefix to all keys for any backend.

    This is an internal utility used by the registry to support hierarchical
    namespacing. Use FileStorage.from_name("dev.images") instead of
    instantiating it directly.
    """

    def __init__(self, backend: BlobStorageBackend, prefix: str = ""):
        """Initialize prefixed backend wrapper.

        Args:
            backend: The underlying backend to wrap
            prefix: Prefix to add to all keys (e.g., "images/thumbnails")
        """
        self._backend = backend
        # Normalize prefix: ensure it ends with "/" if not empty
        self._prefix = prefix.strip("/") + "/" if prefix.strip("/") else ""

    @property
    def prefix(self) -> str:
        return self._prefix

    def _add_prefix(self, key: str) -> str:
        return self._prefix + key.lstrip("/")

    def put(
        self,
        key: str,
        data: bytes | BinaryIO,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        return self._backend.put(self._add_prefix(key), data, content_type, metadata)

    def get(self, key: str) -> bytes:
        return self._backend.get(self._add_prefix(key))

    def delete(self, key: str) -> None:
        self._backend.delete(self._add_prefix(key))

    def exists(self, key: str) -> bool:
        return self._backend.exists(self._add_prefix(key))

    def get_metadata(self, key: str) -> BlobMetadata:
        metadata = self._backend.get_metadata(self._add_prefix(key))
        # Return metadata with unprefixed key
        return BlobMetadata(
            key=key,
            size=metadata.size,
            content_type=metadata.content_type,
            last_modified=metadata.last_modified,
            etag=metadata.etag,
            custom_metadata=metadata.custom_metadata,
        )

    def generate_presigned_url(
        self, key: str, expiration: timedelta = timedelta(hours=1), method: str = "GET"
    ) -> str:
        return self._backend.generate_presigned_url(self._add_prefix(key), expiration, method)
