"""Tests for delete orchestration."""

from __future__ import annotations

import logging
from unittest.mock import Mock

import pytest

from filestore.core.storage.blob import BlobNotFoundError, BlobStorageError
from filestore.core.storage.records import (
    RecordNotFoundError,
    RecordStore,
    RecordStoreUnavailableError,
    create_record_store,
)
from filestore.files.delete import FileDeleter
from filestore.files.errors import BlobDeleteFailedError, ErrorKind, RecordDeleteFailedError
from filestore.files.models import DeleteRequest


@pytest.fixture
def record_store_mock():
    return Mock(spec=RecordStore)


class TestFileDeleter:
    """Test suite for FileDeleter."""

    def test_deletes_blob_and_record(self, blob_store, object_backend):
        """Test the happy path removes both the blob and its record."""
        record_store = create_record_store(object_backend)
        blob_store.put("images/cat.png", b"data").run()
        ref = record_store.write("meta/images", {"name": "cat.png"})

        result = FileDeleter(blob_store, record_store).delete("images/cat.png", ref.path)

        assert not result.partial
        assert result.db_path == ref.path
        assert not blob_store.exists("images/cat.png")
        assert record_store.read(ref.path) is None

    def test_blob_only(self, blob_store, record_store_mock):
        """Test that without db_path only the blob is deleted."""
        blob_store.put("a.txt", b"data").run()

        result = FileDeleter(blob_store, record_store_mock).delete("a.txt")

        assert result.to_dict() == {"path": "a.txt"}
        assert record_store_mock.mock_calls == []

    def test_blob_failure_leaves_record(self, failing_store, record_store_mock):
        """Test that the record is untouched when the blob delete fails."""
        store = failing_store({"delete"}, BlobStorageError("denied"))
        deleter = FileDeleter(store, record_store_mock)

        with pytest.raises(BlobDeleteFailedError) as exc_info:
            deleter.delete("a.txt", "meta/images/k1")

        error = exc_info.value
        assert error.kind is ErrorKind.BLOB_DELETE_FAILED
        assert error.stage == "delete_blob"
        assert error.path == "a.txt"
        assert error.db_path == "meta/images/k1"
        assert isinstance(error.cause, BlobStorageError)
        record_store_mock.remove.assert_not_called()

    def test_missing_blob_is_a_failure(self, blob_store, record_store_mock):
        """Test that deleting a missing blob fails without touching the record."""
        with pytest.raises(BlobDeleteFailedError) as exc_info:
            FileDeleter(blob_store, record_store_mock).delete("missing.txt", "meta/images/k1")

        assert isinstance(exc_info.value.cause, BlobNotFoundError)
        record_store_mock.remove.assert_not_called()

    def test_missing_record_is_success(self, blob_store, record_store_mock):
        """Test that an already removed record counts as deleted."""
        blob_store.put("a.txt", b"data").run()
        record_store_mock.remove.side_effect = RecordNotFoundError("gone")

        result = FileDeleter(blob_store, record_store_mock).delete("a.txt", "meta/images/k1")

        assert not result.partial
        assert result.db_path == "meta/images/k1"

    def test_record_failure_is_partial(self, blob_store, record_store_mock):
        """Test that a record failure after the blob delete is reported, not raised."""
        blob_store.put("a.txt", b"data").run()
        record_store_mock.remove.side_effect = RecordStoreUnavailableError("down")

        result = FileDeleter(blob_store, record_store_mock).delete("a.txt", "meta/images/k1")

        assert result.partial
        assert isinstance(result.record_error, RecordDeleteFailedError)
        assert result.record_error.kind is ErrorKind.RECORD_DELETE_FAILED
        assert result.record_error.db_path == "meta/images/k1"
        assert not blob_store.exists("a.txt")
        assert "record_error" in result.to_dict()

    def test_retry_record_delete(self, blob_store, record_store_mock):
        """Test that retrying a partial delete only removes the record."""
        blob_store.put("a.txt", b"data").run()
        record_store_mock.remove.side_effect = [RecordStoreUnavailableError("down"), None]
        deleter = FileDeleter(blob_store, record_store_mock)

        partial = deleter.delete("a.txt", "meta/images/k1")
        result = deleter.retry_record_delete(partial)

        assert partial.partial
        assert not result.partial
        assert record_store_mock.remove.call_count == 2

    def test_retry_of_complete_delete_is_noop(self, blob_store, record_store_mock):
        blob_store.put("a.txt", b"data").run()
        deleter = FileDeleter(blob_store, record_store_mock)
        result = deleter.delete("a.txt", "meta/images/k1")

        assert deleter.retry_record_delete(result) is result
        assert record_store_mock.remove.call_count == 1

    def test_no_record_store_skips_with_warning(self, blob_store, caplog):
        """Test that db_path without a record store is skipped and logged."""
        blob_store.put("a.txt", b"data").run()

        with caplog.at_level(logging.WARNING, logger="filestore.files.delete"):
            result = FileDeleter(blob_store).delete("a.txt", "meta/images/k1")

        assert result.db_path is None
        assert not result.partial
        assert "not removed" in caplog.text

    def test_delete_request(self, blob_store, record_store_mock):
        blob_store.put("a.txt", b"data").run()

        result = FileDeleter(blob_store, record_store_mock).delete_request(
            DeleteRequest(path="a.txt", db_path="meta/images/k1")
        )

        record_store_mock.remove.assert_called_once_with("meta/images/k1")
        assert result.to_dict() == {"path": "a.txt", "db_path": "meta/images/k1"}
