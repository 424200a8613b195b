from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest

from filestore.core.storage.backends import FilesystemBackend, FilesystemObjectBackend
from filestore.core.storage.blob import BlobStorageBackend
from filestore.core.storage.store import BlobStore
from filestore.files.progress import ProgressSink


class RecordingSink(ProgressSink):
    """Sink that records every notification in order."""

    def __init__(self):
        self.events: list[tuple[str, Any]] = []

    def on_progress(self, event):
        self.events.append(("progress", event))

    def on_error(self, kind, error):
        self.events.append(("error", (kind, error)))

    def on_complete(self, result):
        self.events.append(("complete", result))

    @property
    def percents(self) -> list[int]:
        return [event.percent for name, event in self.events if name == "progress"]

    @property
    def terminal(self) -> list[tuple[str, Any]]:
        return [(name, payload) for name, payload in self.events if name != "progress"]


class ChunkedBackend(FilesystemBackend):
    """Filesystem backend that reads the source in fixed, uneven chunks."""

    def __init__(self, base_path, chunks: list[int], drain: bool = True):
        super().__init__(base_path)
        self._chunks = chunks
        self._drain = drain

    def put(self, key, data, content_type=None, metadata=None):
        payload = b""
        for size in self._chunks:
            payload += data.read(size)
        if self._drain:
            payload += data.read()
        return super().put(key, payload, content_type, metadata)


class FailingBlobBackend(FilesystemBackend):
    """Filesystem backend whose selected operations raise."""

    def __init__(self, base_path, fail_on: set[str], error: Exception):
        super().__init__(base_path)
        self._fail_on = fail_on
        self._error = error

    def put(self, key, data, content_type=None, metadata=None):
        if "put" in self._fail_on:
            data.read(4)
            raise self._error
        return super().put(key, data, content_type, metadata)

    def delete(self, key):
        if "delete" in self._fail_on:
            raise self._error
        super().delete(key)

    def generate_presigned_url(self, key, expiration=timedelta(hours=1), method="GET"):
        if "presign" in self._fail_on:
            raise self._error
        return super().generate_presigned_url(key, expiration, method)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def blob_backend(tmp_path) -> BlobStorageBackend:
    return FilesystemBackend(base_path=tmp_path / "blobs")


@pytest.fixture
def blob_store(blob_backend) -> BlobStore:
    return BlobStore(blob_backend, bucket="test-bucket")


@pytest.fixture
def object_backend(tmp_path) -> FilesystemObjectBackend:
    return FilesystemObjectBackend(base_path=tmp_path / "records")


@pytest.fixture
def chunked_store(tmp_path):
    """Factory for a blob store whose backend reads the source in given chunks."""

    def _make(chunks: list[int], drain: bool = True, **kwargs) -> BlobStore:
        backend = ChunkedBackend(tmp_path / "blobs", chunks, drain)
        return BlobStore(backend, bucket="test-bucket", **kwargs)

    return _make


@pytest.fixture
def failing_store(tmp_path):
    """Factory for a blob store whose backend raises on selected operations."""

    def _make(fail_on: set[str], error: Exception, **kwargs) -> BlobStore:
        backend = FailingBlobBackend(tmp_path / "blobs", fail_on, error)
        return BlobStore(backend, bucket="test-bucket", **kwargs)

    return _make
