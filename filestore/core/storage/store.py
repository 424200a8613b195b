"""Blob store adapter used by the upload and delete orchestrators.

``BlobStore.put`` hands back an ``UploadTask`` which reports transfer progress
to its subscriber.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import BinaryIO

from filestore.core.storage.blob import (
    LOCATOR_MODES,
    LOCATOR_NONE,
    LOCATOR_PRESIGNED,
    BlobMetadata,
    BlobStorageBackend,
    BlobStorageError,
    BlobUploadMetadata,
)
from filestore.core.storage.task import UploadTask


class BlobStore:
    """Blob store adapter used by the upload and delete orchestrators.

    Wraps a backend with the three capabilities the orchestration needs:
    starting a transfer, resolving a download locator for a finished transfer
    and deleting a blob. Capabilities such as locator support are fixed at
    construction time.
    """

    def __init__(
        self,
        backend: BlobStorageBackend,
        bucket: str | None = None,
        locator_mode: str = LOCATOR_PRESIGNED,
        locator_expiry: timedelta = timedelta(days=7),
        native_local_path_prefix: str | None = None,
    ):
        """Initialize the blob store.

        Args:
            backend: Storage backend implementation
            bucket: Bucket/container name reported in blob metadata
            locator_mode: "presigned" to hand out presigned GET URLs, "none"
                when the backend exposes no durable locator
            locator_expiry: Validity of presigned download URLs
            native_local_path_prefix: Prefix identifying device-local file
                paths that may be streamed from disk
        """
        if locator_mode not in LOCATOR_MODES:
            raise ValueError(
                f"Unknown locator mode: {locator_mode} (expected one of {', '.join(LOCATOR_MODES)})"
            )
        self._backend = backend
        self._bucket = bucket
        self._locator_mode = locator_mode
        self._locator_expiry = locator_expiry
        self._native_prefix = native_local_path_prefix

    @property
    def backend(self) -> BlobStorageBackend:
        return self._backend

    @property
    def locator_mode(self) -> str:
        return self._locator_mode

    def put(
        self,
        path: str,
        source: bytes | BinaryIO | Path | str,
        blob_metadata: BlobUploadMetadata | None = None,
    ) -> UploadTask:
        """Begin an upload of ``source`` to ``path``.

        No I/O happens here; the returned task performs the transfer when run
        and publishes progress to its subscriber.

        Args:
            path: Object key for the blob
            source: Bytes, binary stream, local Path, or a device-local path
                string starting with the configured native prefix
            blob_metadata: Content type and custom metadata for the blob

        Returns:
            UploadTask for the transfer
        """
        return UploadTask(
            backend=self._backend,
            key=path,
            source=source,
            blob_metadata=blob_metadata or BlobUploadMetadata(),
            bucket=self._bucket,
            native_local_path_prefix=self._native_prefix,
        )

    def get_download_locator(self, task: UploadTask) -> str | None:
        """Resolve a download locator for a completed upload task.

        Returns None when the backend exposes no locator.

        Raises:
            BlobStorageError: If the task did not succeed or the backend fails
        """
        snapshot = task.snapshot
        if not snapshot.succeeded:
            raise BlobStorageError(f"Upload of {snapshot.ref} has not completed")

        if self._locator_mode == LOCATOR_NONE:
            return None

        return self._backend.generate_presigned_url(snapshot.ref, self._locator_expiry, "GET")

    def delete(self, path: str) -> None:
        """Delete the blob stored at ``path``.

        Raises:
            BlobNotFoundError: If no blob exists at path
            BlobStorageError: On backend/transport errors
        """
        self._backend.delete(path)

    def exists(self, path: str) -> bool:
        """Check if a blob exists."""
        return self._backend.exists(path)

    def get(self, path: str) -> bytes:
        """Retrieve a blob."""
        return self._backend.get(path)

    def get_metadata(self, path: str) -> BlobMetadata:
        """Get metadata for a blob."""
        return self._backend.get_metadata(path)
