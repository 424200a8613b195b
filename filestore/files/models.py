"""Request and result types for uploads and deletes."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO

from filestore.core.storage.blob import BlobUploadMetadata
from filestore.core.storage.records import RecordRef, ServerTimestamp
from filestore.core.storage.task import TaskSnapshot
from filestore.files.errors import RecordDeleteFailedError

# factory(snapshot_metadata, download_locator, options) -> record
MetadataFactory = Callable[..., dict[str, Any]]


@dataclass(frozen=True)
class MetadataOptions:
    """Per-call options for metadata synthesis.

    ``metadata_factory`` overrides the deployment default for this call;
    ``extra`` is handed to the factory untouched.
    """

    metadata_factory: MetadataFactory | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UploadRequest:
    """A single file upload."""

    path: str
    filename: str
    file: bytes | BinaryIO | Path | str
    file_metadata: BlobUploadMetadata = field(default_factory=BlobUploadMetadata)
    db_path: str | None = None
    metadata_options: MetadataOptions | None = None
    meta: Any = None

    def __post_init__(self) -> None:
        if not self.filename or "/" in self.filename:
            raise ValueError(f"Invalid filename: {self.filename!r}")

    @property
    def blob_path(self) -> str:
        """Blob key the file is stored under."""
        prefix = self.path.rstrip("/")
        return f"{prefix}/{self.filename}" if prefix else self.filename


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a completed upload.

    ``key`` is the record-store identifier (push key or collection id) and is
    None when no metadata record was written; ``id`` is only set by the
    Collection record store.
    """

    record: dict[str, Any]
    upload_task_snapshot: TaskSnapshot
    created_at: ServerTimestamp
    key: str | None = None
    id: str | None = None
    snapshot: RecordRef | None = None
    download_locator: str | None = None
    db_path: str | None = None

    @property
    def File(self) -> dict[str, Any]:
        """Legacy alias of ``record``."""
        return self.record

    @property
    def uploadTaskSnaphot(self) -> TaskSnapshot:
        """Legacy (misspelled) alias of ``upload_task_snapshot``."""
        return self.upload_task_snapshot

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping of the result; absent identifiers and locator are omitted."""
        snapshot = self.upload_task_snapshot
        result: dict[str, Any] = {
            "record": self.record,
            "File": self.record,
            "upload_task_snapshot": {
                "ref": snapshot.ref,
                "bytes_transferred": snapshot.bytes_transferred,
                "total_bytes": snapshot.total_bytes,
                "state": snapshot.state.value,
                "metadata": snapshot.metadata,
            },
            "created_at": repr(self.created_at),
        }
        if self.key is not None:
            result["key"] = self.key
        if self.id is not None:
            result["id"] = self.id
        if self.snapshot is not None:
            result["record_path"] = self.snapshot.path
        if self.download_locator is not None:
            result["download_locator"] = self.download_locator
        if self.db_path is not None:
            result["db_path"] = self.db_path
        return result


@dataclass(frozen=True)
class DeleteRequest:
    """Delete a blob and, optionally, its metadata record."""

    path: str
    db_path: str | None = None


@dataclass(frozen=True)
class DeleteResult:
    """Outcome of a delete.

    ``db_path`` is set when a record removal was attempted. ``record_error``
    is attached when the blob was deleted but removing the record failed.
    """

    path: str
    db_path: str | None = None
    record_error: RecordDeleteFailedError | None = None

    @property
    def partial(self) -> bool:
        return self.record_error is not None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"path": self.path}
        if self.db_path is not None:
            result["db_path"] = self.db_path
        if self.record_error is not None:
            result["record_error"] = str(self.record_error)
        return result
