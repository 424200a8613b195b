"""Tests for the document backends that hold metadata records."""

from __future__ import annotations

from unittest.mock import MagicMock, Mock, patch

import pytest
from bson import ObjectId
from pymongo.errors import ConnectionFailure, OperationFailure
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError

from filestore.core.storage.backends.mongodb_backend import MongoDBBackend
from filestore.core.storage.object import (
    DuplicateKeyError,
    InvalidQueryError,
    ObjectStorageConnectionError,
    ObjectStorageError,
)


class TestFilesystemObjectBackend:
    """Test suite for the JSON-file document backend."""

    def test_insert_generates_id(self, object_backend):
        """Test that inserts without _id get a generated identifier."""
        document_id = object_backend.insert_one("meta.images", {"name": "cat.png"})

        assert len(document_id) == 24
        assert object_backend.find_one("meta.images", {"_id": document_id}) == {
            "name": "cat.png",
            "_id": document_id,
        }

    def test_insert_duplicate(self, object_backend):
        """Test that inserting an existing _id is rejected."""
        object_backend.insert_one("c", {"_id": "a", "v": 1})

        with pytest.raises(DuplicateKeyError):
            object_backend.insert_one("c", {"_id": "a", "v": 2})

    def test_replace_with_upsert_creates(self, object_backend):
        """Test that replace with upsert writes a missing document."""
        object_backend.replace_one("c", {"_id": "k1"}, {"_id": "k1", "v": 1}, upsert=True)

        assert object_backend.find_one("c", {"_id": "k1"})["v"] == 1

    def test_replace_existing(self, object_backend):
        """Test that replace overwrites the matched document."""
        object_backend.insert_one("c", {"_id": "k1", "v": 1})

        assert object_backend.replace_one("c", {"_id": "k1"}, {"v": 2}) == (1, 1)
        assert object_backend.find_one("c", {"_id": "k1"}) == {"v": 2, "_id": "k1"}

    def test_replace_missing_without_upsert(self, object_backend):
        """Test that replace without upsert leaves nothing behind."""
        assert object_backend.replace_one("c", {"_id": "k1"}, {"v": 2}) == (0, 0)
        assert object_backend.find_one("c", {"_id": "k1"}) is None

    def test_delete_one(self, object_backend):
        """Test deleting reports how many documents were removed."""
        object_backend.insert_one("c", {"_id": "k1"})

        assert object_backend.delete_one("c", {"_id": "k1"}) == 1
        assert object_backend.delete_one("c", {"_id": "k1"}) == 0

    def test_find_by_field(self, object_backend):
        """Test equality filters on other fields."""
        object_backend.insert_one("c", {"kind": "image", "name": "a"})
        object_backend.insert_one("c", {"kind": "video", "name": "b"})

        assert object_backend.find_one("c", {"kind": "video"})["name"] == "b"
        assert object_backend.find_one("c", {"kind": "audio"}) is None
        assert object_backend.find_one("missing", {"kind": "image"}) is None

    def test_invalid_names(self, object_backend):
        """Test that names escaping the base path are rejected."""
        with pytest.raises(InvalidQueryError):
            object_backend.insert_one("../outside", {"v": 1})
        with pytest.raises(InvalidQueryError):
            object_backend.find_one("c", {"_id": "../../etc"})

    def test_datetimes_are_serialized(self, object_backend):
        """Test that non-JSON values are written as strings."""
        from datetime import UTC, datetime

        object_backend.insert_one("c", {"_id": "k", "at": datetime(2025, 1, 1, tzinfo=UTC)})

        assert object_backend.find_one("c", {"_id": "k"})["at"] == "2025-01-01 00:00:00+00:00"


class TestMongoDBBackend:
    """Test suite for the MongoDB backend with a mocked client."""

    @pytest.fixture
    def mongo(self):
        """Create a MongoDB backend whose client and collection are mocks."""
        with patch("filestore.core.storage.backends.mongodb_backend.MongoClient") as mock_client_class:
            mock_client = MagicMock()
            mock_collection = Mock()
            mock_client.__getitem__.return_value.__getitem__.return_value = mock_collection
            mock_client_class.return_value = mock_client

            backend = MongoDBBackend(host="db", port=27017, database="filestore")
            backend._test_mock_client_class = mock_client_class
            backend._test_mock_client = mock_client
            backend._test_mock_collection = mock_collection
            yield backend

    def test_init_pings_server(self, mongo):
        """Test that the connection is verified on startup."""
        mongo._test_mock_client_class.assert_called_once_with("mongodb://db:27017/")
        mongo._test_mock_client.admin.command.assert_called_once_with("ping")

    @patch("filestore.core.storage.backends.mongodb_backend.MongoClient")
    def test_init_with_credentials(self, mock_client_class):
        """Test that credentials end up in the connection URI."""
        MongoDBBackend(host="db", port=1234, username="user", password="pw")

        mock_client_class.assert_called_once_with("mongodb://user:pw@db:1234/")

    @patch("filestore.core.storage.backends.mongodb_backend.MongoClient")
    def test_init_connection_failure(self, mock_client_class):
        """Test that an unreachable server raises ObjectStorageConnectionError."""
        mock_client_class.return_value.admin.command.side_effect = ConnectionFailure("down")

        with pytest.raises(ObjectStorageConnectionError):
            MongoDBBackend()

    def test_insert_one_returns_string_id(self, mongo):
        """Test that the generated ObjectId is returned as a string."""
        object_id = ObjectId()
        mongo._test_mock_collection.insert_one.return_value = Mock(inserted_id=object_id)
        document = {"name": "cat.png"}

        assert mongo.insert_one("meta.images", document) == str(object_id)
        assert "_id" not in document

    def test_insert_duplicate(self, mongo):
        """Test that duplicate key errors are translated."""
        mongo._test_mock_collection.insert_one.side_effect = MongoDuplicateKeyError("dup")

        with pytest.raises(DuplicateKeyError):
            mongo.insert_one("c", {"_id": "a"})

    def test_push_keys_are_not_converted(self, mongo):
        """Test that string ids that are not ObjectIds are queried as strings."""
        mongo._test_mock_collection.replace_one.return_value = Mock(matched_count=0, modified_count=0)

        mongo.replace_one("c", {"_id": "-NmX0abcdefghijklmno"}, {"v": 1}, upsert=True)

        mongo._test_mock_collection.replace_one.assert_called_once_with(
            {"_id": "-NmX0abcdefghijklmno"}, {"v": 1}, upsert=True
        )

    def test_object_id_strings_are_converted(self, mongo):
        """Test that ObjectId-shaped ids are queried as ObjectIds."""
        object_id = ObjectId()
        mongo._test_mock_collection.delete_one.return_value = Mock(deleted_count=1)
        query = {"_id": str(object_id)}

        assert mongo.delete_one("c", query) == 1
        mongo._test_mock_collection.delete_one.assert_called_once_with({"_id": object_id})
        assert query == {"_id": str(object_id)}

    def test_find_one_converts_id(self, mongo):
        """Test that returned documents carry a string _id."""
        object_id = ObjectId()
        mongo._test_mock_collection.find_one.return_value = {"_id": object_id, "v": 1}

        assert mongo.find_one("c", {"_id": str(object_id)}) == {"_id": str(object_id), "v": 1}

    def test_find_one_missing(self, mongo):
        """Test that a missing document returns None."""
        mongo._test_mock_collection.find_one.return_value = None

        assert mongo.find_one("c", {"_id": "nope"}) is None

    def test_lost_connection(self, mongo):
        """Test that transport failures are reported as connection errors."""
        mongo._test_mock_collection.delete_one.side_effect = ConnectionFailure("reset")

        with pytest.raises(ObjectStorageConnectionError):
            mongo.delete_one("c", {"_id": "k"})

    def test_invalid_replace(self, mongo):
        """Test that server-side rejections are reported as invalid queries."""
        mongo._test_mock_collection.replace_one.side_effect = OperationFailure("bad")

        with pytest.raises(InvalidQueryError):
            mongo.replace_one("c", {"_id": "k"}, {"$set": 1})

    def test_find_error(self, mongo):
        """Test that other driver failures surface as ObjectStorageError."""
        mongo._test_mock_collection.find_one.side_effect = OperationFailure("bad")

        with pytest.raises(ObjectStorageError):
            mongo.find_one("c", {"_id": "k"})
