"""Tests for record stores and push key generation."""

from __future__ import annotations

import random
from datetime import datetime
from unittest.mock import Mock

import pytest

from filestore.core.storage.object import ObjectStorageConnectionError, ObjectStorageError
from filestore.core.storage.records import (
    PUSH_CHARS,
    SERVER_TIMESTAMP,
    CollectionRecordStore,
    InvalidRecordPathError,
    KeyedTreeRecordStore,
    PushKeyGenerator,
    RecordNotFoundError,
    RecordStoreError,
    RecordStoreUnavailableError,
    ServerTimestamp,
    create_record_store,
)


class _Clock:
    def __init__(self, now: float):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestPushKeyGenerator:
    """Test suite for ordered push keys."""

    def test_key_shape(self):
        """Test that keys are 20 characters from the push alphabet."""
        key = PushKeyGenerator()()

        assert len(key) == 20
        assert set(key) <= set(PUSH_CHARS)

    def test_keys_sort_by_time(self):
        """Test that later keys sort after earlier ones."""
        clock = _Clock(1_700_000_000.000)
        generate = PushKeyGenerator(time_source=clock, rng=random.Random(1))

        first = generate()
        clock.now += 1.0
        second = generate()

        assert first < second

    def test_same_millisecond_keys_increase(self):
        """Test that keys within one millisecond stay unique and ordered."""
        generate = PushKeyGenerator(time_source=_Clock(1_700_000_000.0), rng=random.Random(7))

        keys = [generate() for _ in range(50)]

        assert keys == sorted(keys)
        assert len(set(keys)) == 50
        assert len({key[:8] for key in keys}) == 1


class TestServerTimestamp:
    """Test suite for the server timestamp placeholder."""

    def test_singleton(self):
        assert ServerTimestamp() is SERVER_TIMESTAMP
        assert repr(SERVER_TIMESTAMP) == "SERVER_TIMESTAMP"


class TestKeyedTreeRecordStore:
    """Test suite for the KeyedTree record store."""

    @pytest.fixture
    def store(self, object_backend):
        keys = iter(["-key0000000000000001", "-key0000000000000002"])
        return KeyedTreeRecordStore(object_backend, key_generator=lambda: next(keys))

    def test_write_at_generated_key(self, store, object_backend):
        """Test that the record is stored under the generated key."""
        ref = store.write("meta/images", {"name": "cat.png"})

        assert ref.key == "-key0000000000000001"
        assert ref.path == "meta/images/-key0000000000000001"
        assert ref.id is None
        assert object_backend.find_one("meta.images", {"_id": ref.key})["name"] == "cat.png"

    def test_read_and_remove(self, store):
        """Test reading a record back and removing it."""
        ref = store.write("meta/images/", {"name": "cat.png"})

        assert store.read(ref.path) == {"name": "cat.png"}
        store.remove(ref.path)
        assert store.read(ref.path) is None

    def test_remove_missing(self, store):
        """Test removing a missing record raises RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError):
            store.remove("meta/images/nothing")

    def test_server_timestamp_is_resolved(self, store):
        """Test that timestamp placeholders are stored as a real time."""
        ref = store.write("meta/images", {"created": SERVER_TIMESTAMP})

        stored = store.read(ref.path)["created"]
        assert isinstance(datetime.fromisoformat(stored), datetime)

    def test_invalid_paths(self, store):
        """Test that paths must address a collection and an item."""
        with pytest.raises(InvalidRecordPathError):
            store.write("  ", {"a": 1})
        with pytest.raises(InvalidRecordPathError):
            store.remove("meta")

    def test_backend_errors_are_translated(self):
        """Test backend failures surface as record store errors."""
        backend = Mock()
        backend.replace_one.side_effect = ObjectStorageError("rejected")
        backend.delete_one.side_effect = ObjectStorageConnectionError("down")
        store = KeyedTreeRecordStore(backend, key_generator=lambda: "k")

        with pytest.raises(RecordStoreError, match="rejected"):
            store.write("meta/images", {"a": 1})
        with pytest.raises(RecordStoreUnavailableError):
            store.remove("meta/images/k")


class TestCollectionRecordStore:
    """Test suite for the Collection record store."""

    def test_write_returns_backend_id(self, object_backend):
        """Test that the backend-generated id becomes key and id."""
        store = CollectionRecordStore(object_backend)

        ref = store.write("meta/images", {"name": "cat.png"})

        assert ref.id == ref.key
        assert ref.path == f"meta/images/{ref.id}"
        assert object_backend.find_one("meta.images", {"_id": ref.id}) is not None
        assert store.read(ref.path) == {"name": "cat.png"}

    def test_remove(self, object_backend):
        """Test removing an appended record."""
        store = CollectionRecordStore(object_backend)
        ref = store.write("meta/images", {"name": "cat.png"})

        store.remove(ref.path)

        assert object_backend.find_one("meta.images", {"_id": ref.id}) is None


class TestCreateRecordStore:
    """Test suite for variant selection."""

    def test_default_is_keyed_tree(self, object_backend):
        store = create_record_store(object_backend)
        assert isinstance(store, KeyedTreeRecordStore)
        assert store.variant == "keyed_tree"

    def test_collection_flag(self, object_backend):
        store = create_record_store(object_backend, use_collection=True)
        assert isinstance(store, CollectionRecordStore)
        assert store.variant == "collection"
