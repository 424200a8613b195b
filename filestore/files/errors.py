"""Errors raised by the upload and delete orchestrators.

Each error names the stage that failed and keeps whatever already succeeded
before it, so callers can retry only the failing step.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from filestore.core.storage.blob import UploadCancelledError

if TYPE_CHECKING:
    from filestore.core.storage.task import TaskSnapshot
    from filestore.files.models import UploadRequest


class ErrorKind(Enum):
    """Failure taxonomy shared by uploads and deletes."""

    TRANSFER_FAILED = "transfer_failed"
    LOCATOR_UNAVAILABLE = "locator_unavailable"
    METADATA_PERSIST_FAILED = "metadata_persist_failed"
    BLOB_DELETE_FAILED = "blob_delete_failed"
    RECORD_DELETE_FAILED = "record_delete_failed"


class FileStorageError(Exception):
    """Base exception for orchestration failures."""

    kind: ErrorKind
    stage: str = ""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class TransferFailedError(FileStorageError):
    """The blob backend rejected or interrupted the upload."""

    kind = ErrorKind.TRANSFER_FAILED
    stage = "transfer"

    def __init__(
        self,
        message: str,
        request: UploadRequest,
        snapshot: TaskSnapshot | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause)
        self.request = request
        self.snapshot = snapshot

    @property
    def cancelled(self) -> bool:
        return isinstance(self.cause, UploadCancelledError)


class MetadataPersistFailedError(FileStorageError):
    """The blob was stored but its metadata record could not be written.

    Carries the finished blob transfer and the synthesized record so the write
    can be retried with ``FileUploader.retry_metadata`` without re-uploading.
    ``record`` is None when the metadata factory itself failed.
    """

    kind = ErrorKind.METADATA_PERSIST_FAILED
    stage = "persist_metadata"

    def __init__(
        self,
        message: str,
        request: UploadRequest,
        snapshot: TaskSnapshot,
        record: dict[str, Any] | None,
        download_locator: str | None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause)
        self.request = request
        self.snapshot = snapshot
        self.record = record
        self.download_locator = download_locator

    @property
    def db_path(self) -> str | None:
        return self.request.db_path


class BlobDeleteFailedError(FileStorageError):
    """The blob could not be deleted; its metadata record was left untouched."""

    kind = ErrorKind.BLOB_DELETE_FAILED
    stage = "delete_blob"

    def __init__(
        self,
        message: str,
        path: str,
        db_path: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause)
        self.path = path
        self.db_path = db_path


class RecordDeleteFailedError(FileStorageError):
    """The blob was deleted but removing its metadata record failed."""

    kind = ErrorKind.RECORD_DELETE_FAILED
    stage = "delete_record"

    def __init__(
        self,
        message: str,
        path: str,
        db_path: str,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause)
        self.path = path
        self.db_path = db_path
