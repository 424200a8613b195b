"""Upload tasks: a single blob transfer and the progress it reports."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any, BinaryIO

from filestore.core.storage.blob import (
    BlobNotFoundError,
    BlobStorageBackend,
    BlobStorageError,
    BlobUploadMetadata,
    InvalidUploadSourceError,
    UploadCancelledError,
)

logger = logging.getLogger(__name__)


class TaskState(Enum):
    """Lifecycle state of an upload task."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    CANCELED = "canceled"


@dataclass(frozen=True)
class TaskSnapshot:
    """Point-in-time view of an upload task."""

    ref: str
    bytes_transferred: int
    total_bytes: int
    state: TaskState
    metadata: dict[str, Any] | None = None
    etag: str | None = None
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is TaskState.SUCCESS


class _ProgressReader:
    """File-like wrapper counting bytes as the backend reads them."""

    def __init__(
        self,
        stream: BinaryIO,
        cancelled: threading.Event,
        on_read: Callable[[int], None],
    ):
        self._stream = stream
        self._cancelled = cancelled
        self._on_read = on_read

    def read(self, size: int = -1) -> bytes:
        if self._cancelled.is_set():
            raise UploadCancelledError("Upload cancelled")
        chunk = self._stream.read(size)
        if chunk:
            self._on_read(len(chunk))
        return chunk

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._stream.seek(offset, whence)

    def tell(self) -> int:
        return self._stream.tell()


class UploadTask:
    """A blob transfer that can be observed and cancelled.

    The task accepts a single subscriber. Progress snapshots are pushed while
    the backend reads the source; exactly one of error/complete is delivered
    at the end, after which the subscription is dropped.
    """

    def __init__(
        self,
        backend: BlobStorageBackend,
        key: str,
        source: bytes | BinaryIO | Path | str,
        blob_metadata: BlobUploadMetadata,
        bucket: str | None = None,
        native_local_path_prefix: str | None = None,
    ):
        self._backend = backend
        self._key = key
        self._source = source
        self._blob_metadata = blob_metadata
        self._bucket = bucket
        self._native_prefix = native_local_path_prefix

        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._observer: tuple[Callable | None, Callable | None, Callable | None] | None = None
        self._snapshot = TaskSnapshot(
            ref=key, bytes_transferred=0, total_bytes=0, state=TaskState.PENDING
        )

    @property
    def key(self) -> str:
        return self._key

    @property
    def snapshot(self) -> TaskSnapshot:
        return self._snapshot

    def subscribe(
        self,
        on_next: Callable[[TaskSnapshot], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
        on_complete: Callable[[TaskSnapshot], None] | None = None,
    ) -> Callable[[], None]:
        """Register the task's single observer.

        Returns:
            Callable that removes the subscription

        Raises:
            RuntimeError: If the task already has a subscriber
        """
        if self._observer is not None:
            raise RuntimeError(f"Upload task for {self._key} already has a subscriber")

        observer = (on_next, on_error, on_complete)
        self._observer = observer

        def unsubscribe() -> None:
            if self._observer is observer:
                self._observer = None

        return unsubscribe

    def cancel(self) -> bool:
        """Request cancellation.

        Returns:
            True if the transfer had not finished yet
        """
        with self._lock:
            if self._snapshot.state not in (TaskState.PENDING, TaskState.RUNNING):
                return False
            self._cancelled.set()
        logger.info(f"Cancellation requested for upload: {self._key}")
        return True

    def run(self) -> TaskSnapshot:
        """Perform the transfer.

        Returns:
            Final snapshot of a successful transfer

        Raises:
            UploadCancelledError: If the task was cancelled
            BlobStorageError: If the source is invalid or the backend fails
        """
        if self._snapshot.state is not TaskState.PENDING:
            raise RuntimeError(f"Upload task for {self._key} has already run")

        if self._cancelled.is_set():
            self._fail(UploadCancelledError(f"Upload cancelled before start: {self._key}"))
            raise self._snapshot.error

        try:
            stream, total, owned = self._open_source()
        except InvalidUploadSourceError as e:
            self._fail(e)
            raise

        self._snapshot = TaskSnapshot(
            ref=self._key, bytes_transferred=0, total_bytes=total, state=TaskState.RUNNING
        )

        written = False
        try:
            reader = _ProgressReader(stream, self._cancelled, self._on_read)
            etag = self._backend.put(
                self._key,
                reader,
                content_type=self._blob_metadata.content_type,
                metadata=self._blob_metadata.custom_metadata or None,
            )
            written = True
            stored = self._backend.get_metadata(self._key)
        except Exception as e:
            if self._cancelled.is_set():
                if written:
                    self._discard()
                cancelled = UploadCancelledError(f"Upload cancelled: {self._key}")
                self._fail(cancelled)
                raise cancelled from e
            self._fail(e)
            raise
        finally:
            if owned:
                stream.close()

        # A cancel that lands after the last byte was read still wins until
        # the task is marked successful.
        with self._lock:
            cancelled = self._cancelled.is_set()
            if not cancelled:
                self._snapshot = TaskSnapshot(
                    ref=self._key,
                    bytes_transferred=self._snapshot.bytes_transferred,
                    total_bytes=total,
                    state=TaskState.SUCCESS,
                    metadata=stored.to_dict(self._bucket),
                    etag=etag,
                )

        if cancelled:
            self._discard()
            error = UploadCancelledError(f"Upload cancelled after transfer: {self._key}")
            self._fail(error)
            raise error

        logger.info(f"Upload task finished: {self._key} ({total} bytes)")

        observer = self._take_observer()
        if observer and observer[2]:
            observer[2](self._snapshot)
        return self._snapshot

    def _open_source(self) -> tuple[BinaryIO, int, bool]:
        """Return (stream, total length, whether the task owns the stream)."""
        source = self._source

        if isinstance(source, bytes | bytearray):
            return BytesIO(source), len(source), True

        if isinstance(source, str):
            if not (self._native_prefix and source.startswith(self._native_prefix)):
                raise InvalidUploadSourceError(
                    f"String source for {self._key} is not a device-local path: {source}"
                )
            source = Path(source)

        if isinstance(source, Path):
            if not source.is_file():
                raise InvalidUploadSourceError(f"Local file not found: {source}")
            return open(source, "rb"), source.stat().st_size, True

        if not hasattr(source, "read"):
            raise InvalidUploadSourceError(
                f"Unsupported upload source for {self._key}: {type(source).__name__}"
            )

        if hasattr(source, "seekable") and source.seekable():
            start_pos = source.tell()
            source.seek(0, 2)
            length = source.tell() - start_pos
            source.seek(start_pos)
            return source, length, False

        # Non-seekable streams are buffered to learn their length
        data = source.read()
        return BytesIO(data), len(data), True

    def _on_read(self, size: int) -> None:
        current = self._snapshot
        self._snapshot = TaskSnapshot(
            ref=current.ref,
            bytes_transferred=min(current.bytes_transferred + size, current.total_bytes),
            total_bytes=current.total_bytes,
            state=current.state,
        )
        observer = self._observer
        if observer and observer[0]:
            observer[0](self._snapshot)

    def _discard(self) -> None:
        """Remove a blob stored by a transfer that was cancelled afterwards."""
        try:
            self._backend.delete(self._key)
            logger.info(f"Removed blob of cancelled upload: {self._key}")
        except BlobNotFoundError:
            pass
        except BlobStorageError as e:
            logger.warning(f"Could not remove blob of cancelled upload {self._key}: {e}")

    def _fail(self, error: BaseException) -> None:
        state = TaskState.CANCELED if isinstance(error, UploadCancelledError) else TaskState.ERROR
        self._snapshot = TaskSnapshot(
            ref=self._key,
            bytes_transferred=self._snapshot.bytes_transferred,
            total_bytes=self._snapshot.total_bytes,
            state=state,
            error=error,
        )
        logger.error(f"Upload task failed: {self._key}: {error}")

        observer = self._take_observer()
        if observer and observer[1]:
            observer[1](error)

    def _take_observer(self):
        observer, self._observer = self._observer, None
        return observer
