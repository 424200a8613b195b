"""Progress reporting for uploads.

A ``ProgressSink`` receives ``on_progress`` events while a blob is transferred
and exactly one terminal call, ``on_complete`` or ``on_error``. The
``ProgressChannel`` sits between the upload task and the sink and enforces
that contract: progress never moves backwards and nothing is delivered after
the terminal notification.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from filestore.core.storage.task import TaskSnapshot
from filestore.files.errors import ErrorKind

logger = logging.getLogger(__name__)

FILE_UPLOAD_PROGRESS = "FILE_UPLOAD_PROGRESS"
FILE_UPLOAD_ERROR = "FILE_UPLOAD_ERROR"
FILE_UPLOAD_COMPLETE = "FILE_UPLOAD_COMPLETE"


@dataclass(frozen=True)
class ProgressEvent:
    """Bytes transferred so far for one upload."""

    bytes_transferred: int
    total_bytes: int
    snapshot: TaskSnapshot | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.bytes_transferred < 0 or self.total_bytes < 0:
            raise ValueError("Progress byte counts must be non-negative")
        if self.bytes_transferred > self.total_bytes:
            raise ValueError(
                f"bytes_transferred ({self.bytes_transferred}) exceeds "
                f"total_bytes ({self.total_bytes})"
            )

    @property
    def percent(self) -> int:
        """Whole percent complete, within [0, 100]."""
        if self.total_bytes == 0:
            return 100
        return max(0, min(100, self.bytes_transferred * 100 // self.total_bytes))

    @classmethod
    def from_snapshot(cls, snapshot: TaskSnapshot) -> ProgressEvent:
        return cls(
            bytes_transferred=snapshot.bytes_transferred,
            total_bytes=snapshot.total_bytes,
            snapshot=snapshot,
        )


class ProgressSink:
    """Receiver of upload notifications. Override the methods you need."""

    def on_progress(self, event: ProgressEvent) -> None:
        pass

    def on_error(self, kind: ErrorKind, error: BaseException) -> None:
        pass

    def on_complete(self, result: Any) -> None:
        pass


class LoggingProgressSink(ProgressSink):
    """Sink that reports upload progress through logging."""

    def __init__(self, label: str, logger: logging.Logger = logger):
        self._label = label
        self._logger = logger

    def on_progress(self, event: ProgressEvent) -> None:
        self._logger.info(
            f"{self._label}: {event.percent}% "
            f"({event.bytes_transferred}/{event.total_bytes} bytes)"
        )

    def on_error(self, kind: ErrorKind, error: BaseException) -> None:
        self._logger.error(f"{self._label}: upload failed ({kind.value}): {error}")

    def on_complete(self, result: Any) -> None:
        self._logger.info(f"{self._label}: upload complete")


class ActionDispatchSink(ProgressSink):
    """Sink that turns notifications into action dicts for a dispatch callable.

    Actions have the shape ``{"type": ..., "meta": ..., "payload": ...}``;
    progress payloads carry the task snapshot and the percent complete.
    """

    def __init__(self, dispatch: Callable[[dict[str, Any]], Any], meta: Any = None):
        self._dispatch = dispatch
        self._meta = meta

    def on_progress(self, event: ProgressEvent) -> None:
        self._dispatch(
            {
                "type": FILE_UPLOAD_PROGRESS,
                "meta": self._meta,
                "payload": {"snapshot": event.snapshot, "percent": event.percent},
            }
        )

    def on_error(self, kind: ErrorKind, error: BaseException) -> None:
        self._dispatch({"type": FILE_UPLOAD_ERROR, "meta": self._meta, "payload": error})

    def on_complete(self, result: Any) -> None:
        self._dispatch({"type": FILE_UPLOAD_COMPLETE, "meta": self._meta, "payload": result})


class ProgressChannel:
    """Single-subscriber, ordered channel from an upload to its sink.

    Events that would move progress backwards are dropped. After ``complete``
    or ``error`` the channel is closed and ignores further calls.
    """

    def __init__(self, sink: ProgressSink | None = None):
        self._sink = sink or ProgressSink()
        self._last_bytes = -1
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def progress(self, snapshot: TaskSnapshot) -> None:
        if self._closed or snapshot.bytes_transferred < self._last_bytes:
            return
        self._last_bytes = snapshot.bytes_transferred

        event = ProgressEvent.from_snapshot(snapshot)
        logger.debug(f"Upload progress {snapshot.ref}: {event.percent}%")
        self._sink.on_progress(event)

    def complete(self, result: Any) -> bool:
        """Deliver the success notification; False if already closed."""
        if self._closed:
            return False
        self._closed = True
        self._sink.on_complete(result)
        return True

    def error(self, kind: ErrorKind, error: BaseException) -> bool:
        """Deliver the failure notification; False if already closed."""
        if self._closed:
            return False
        self._closed = True
        self._sink.on_error(kind, error)
        return True
