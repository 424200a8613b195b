"""Upload orchestration: blob transfer, download locator, metadata record.

An upload runs in three stages. The blob is transferred first; only when the
transfer succeeded is a download locator resolved and a metadata record
synthesized and written to the record store. A failure in any stage is
reported once to the progress sink and raised to the caller with everything
that already succeeded attached.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any

from filestore.core.storage.records import SERVER_TIMESTAMP, RecordStore
from filestore.core.storage.store import BlobStore
from filestore.core.storage.task import TaskSnapshot, UploadTask
from filestore.files.errors import (
    ErrorKind,
    MetadataPersistFailedError,
    TransferFailedError,
)
from filestore.files.metadata import synthesize_metadata
from filestore.files.models import UploadRequest, UploadResult
from filestore.files.progress import ProgressChannel, ProgressSink
from filestore.files.settings import StorageSettings

logger = logging.getLogger(__name__)


class UploadState(Enum):
    """Lifecycle state of an upload operation."""

    PENDING = "pending"
    TRANSFERRING = "transferring"
    TRANSFER_FAILED = "transfer_failed"
    TRANSFERRED = "transferred"
    RESOLVING_METADATA = "resolving_metadata"
    PERSIST_FAILED = "persist_failed"
    PERSISTED = "persisted"
    DONE = "done"


class UploadOperation:
    """A prepared upload. Call ``run`` once; ``cancel`` may come from any thread."""

    def __init__(
        self,
        uploader: FileUploader,
        request: UploadRequest,
        task: UploadTask,
        sink: ProgressSink | None = None,
    ):
        self._uploader = uploader
        self._request = request
        self._task = task
        self._channel = ProgressChannel(sink)
        self._state = UploadState.PENDING
        self._lock = threading.Lock()

    @property
    def request(self) -> UploadRequest:
        return self._request

    @property
    def task(self) -> UploadTask:
        return self._task

    @property
    def state(self) -> UploadState:
        return self._state

    def cancel(self) -> bool:
        """Cancel the blob transfer.

        Returns:
            False once the transfer has finished, True otherwise
        """
        with self._lock:
            if self._state not in (UploadState.PENDING, UploadState.TRANSFERRING):
                return False
            return self._task.cancel()

    def run(self) -> UploadResult:
        """Run the upload to completion.

        Raises:
            TransferFailedError: If the blob transfer failed or was cancelled
            MetadataPersistFailedError: If the metadata record could not be written
        """
        with self._lock:
            if self._state is not UploadState.PENDING:
                raise RuntimeError(f"Upload of {self._request.blob_path} has already run")
            self._state = UploadState.TRANSFERRING

        snapshot = self._transfer()

        with self._lock:
            self._state = UploadState.RESOLVING_METADATA

        try:
            result = self._uploader._finish(self._request, snapshot, self._task)
        except MetadataPersistFailedError as e:
            with self._lock:
                self._state = UploadState.PERSIST_FAILED
            self._channel.error(e.kind, e)
            raise
        except Exception as e:
            with self._lock:
                self._state = UploadState.PERSIST_FAILED
            logger.error(f"Metadata for {snapshot.ref} could not be resolved: {e}")
            error = MetadataPersistFailedError(
                f"Upload of {snapshot.ref} succeeded but its metadata was not resolved: {e}",
                request=self._request,
                snapshot=snapshot,
                record=None,
                download_locator=None,
                cause=e,
            )
            self._channel.error(error.kind, error)
            raise error from e

        with self._lock:
            if result.snapshot is not None:
                self._state = UploadState.PERSISTED
        self._channel.complete(result)
        with self._lock:
            self._state = UploadState.DONE
        return result

    def _transfer(self) -> TaskSnapshot:
        unsubscribe = self._task.subscribe(on_next=self._channel.progress)
        try:
            snapshot = self._task.run()
        except Exception as e:
            with self._lock:
                self._state = UploadState.TRANSFER_FAILED
            error = TransferFailedError(
                f"Upload of {self._request.blob_path} failed: {e}",
                request=self._request,
                snapshot=self._task.snapshot,
                cause=e,
            )
            self._channel.error(error.kind, error)
            raise error from e
        finally:
            unsubscribe()

        with self._lock:
            self._state = UploadState.TRANSFERRED
        return snapshot


class FileUploader:
    """Uploads files to a blob store and records their metadata.

    Examples:
        >>> uploader = FileUploader(blob_store, record_store)
        >>> result = uploader.upload(
        ...     UploadRequest(path="images", filename="cat.png", file=data, db_path="meta/images")
        ... )
        >>> result.key
        '-NmX0...'
    """

    def __init__(
        self,
        blob_store: BlobStore,
        record_store: RecordStore | None = None,
        settings: StorageSettings | None = None,
    ):
        self._blob_store = blob_store
        self._record_store = record_store
        self._settings = settings or StorageSettings()

    @property
    def blob_store(self) -> BlobStore:
        return self._blob_store

    @property
    def record_store(self) -> RecordStore | None:
        return self._record_store

    @property
    def settings(self) -> StorageSettings:
        return self._settings

    def prepare(self, request: UploadRequest, sink: ProgressSink | None = None) -> UploadOperation:
        """Create an upload operation without starting the transfer."""
        task = self._blob_store.put(request.blob_path, request.file, request.file_metadata)
        return UploadOperation(self, request, task, sink)

    def upload(self, request: UploadRequest, sink: ProgressSink | None = None) -> UploadResult:
        """Upload a file and persist its metadata record.

        Args:
            request: What to upload and where
            sink: Receiver of progress and the terminal notification

        Returns:
            Upload result

        Raises:
            TransferFailedError: If the blob transfer failed or was cancelled
            MetadataPersistFailedError: If the metadata record could not be written
        """
        return self.prepare(request, sink).run()

    def retry_metadata(self, error: MetadataPersistFailedError) -> UploadResult:
        """Retry only the metadata stage of a failed upload.

        The blob is not transferred again. A record the previous attempt
        already synthesized is reused as is.

        Raises:
            MetadataPersistFailedError: If the write fails again
        """
        logger.info(f"Retrying metadata write for {error.snapshot.ref}")
        return self._persist(error.request, error.snapshot, error.download_locator, error.record)

    def _finish(self, request: UploadRequest, snapshot: TaskSnapshot, task: UploadTask) -> UploadResult:
        locator = self._resolve_locator(task)
        return self._persist(request, snapshot, locator)

    def _resolve_locator(self, task: UploadTask) -> str | None:
        try:
            return self._blob_store.get_download_locator(task)
        except Exception as e:
            logger.warning(
                f"{ErrorKind.LOCATOR_UNAVAILABLE.value}: no download locator for "
                f"{task.key}: {e}"
            )
            return None

    def _persist(
        self,
        request: UploadRequest,
        snapshot: TaskSnapshot,
        locator: str | None,
        record: dict[str, Any] | None = None,
    ) -> UploadResult:
        try:
            if record is None:
                record = synthesize_metadata(
                    snapshot.metadata,
                    locator,
                    request.metadata_options,
                    self._settings.metadata_factory,
                )

            if not request.db_path or self._record_store is None:
                if request.db_path:
                    logger.warning(
                        f"No record store configured, metadata for {snapshot.ref} not persisted"
                    )
                return UploadResult(
                    record=record,
                    upload_task_snapshot=snapshot,
                    created_at=SERVER_TIMESTAMP,
                    download_locator=locator,
                )

            ref = self._record_store.write(request.db_path, record)
        except Exception as e:
            logger.error(f"Metadata for {snapshot.ref} could not be persisted: {e}")
            raise MetadataPersistFailedError(
                f"Upload of {snapshot.ref} succeeded but its metadata was not persisted: {e}",
                request=request,
                snapshot=snapshot,
                record=record,
                download_locator=locator,
                cause=e,
            ) from e

        logger.info(f"Upload complete: {snapshot.ref} -> {ref.path}")
        return UploadResult(
            record=record,
            upload_task_snapshot=snapshot,
            created_at=self._record_store.server_timestamp(),
            key=ref.key,
            id=ref.id,
            snapshot=ref,
            download_locator=locator,
            db_path=request.db_path,
        )
