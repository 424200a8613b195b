"""Record stores for upload metadata.

Two mutually exclusive record-store shapes sit on top of a document backend:

- ``KeyedTreeRecordStore``: allocates an ordered push key under a path and
  writes the record at that key (set-at-key semantics).
- ``CollectionRecordStore``: appends the record to the collection named by the
  path and lets the backend generate its id.

Both expose the same ``write``/``remove`` contract, so callers never branch on
which one is active. Record paths use "/" separators: ``meta/images/<key>``
addresses document ``<key>`` in collection ``meta.images``.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from filestore.core.storage.object import (
    ObjectStorageBackend,
    ObjectStorageConnectionError,
    ObjectStorageError,
)

logger = logging.getLogger(__name__)

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


class ServerTimestamp:
    """Placeholder for a timestamp assigned when a record is written.

    Record stores replace the placeholder with the writing process's UTC
    clock just before the document reaches the backend. Neither document
    backend can stamp a single inserted document with its own clock
    (MongoDB only does so for update operators such as ``$currentDate``),
    so the value approximates the store's time by the clock skew between
    this host and the database.
    """

    _instance: ServerTimestamp | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = ServerTimestamp()


@dataclass(frozen=True)
class RecordRef:
    """Reference to a written record.

    ``id`` is only set by stores whose backend generates the identifier.
    """

    key: str
    path: str
    id: str | None = None


class PushKeyGenerator:
    """Generates 20-character keys that sort in creation order.

    The first 8 characters encode the millisecond timestamp, the remaining 12
    are random. Keys generated within the same millisecond increment the random
    part so ordering holds inside a process.
    """

    def __init__(self, time_source: Callable[[], float] = time.time, rng: random.Random | None = None):
        self._time_source = time_source
        self._rng = rng or random.SystemRandom()
        self._lock = threading.Lock()
        self._last_time = -1
        self._last_random = [0] * 12

    def __call__(self) -> str:
        with self._lock:
            now = int(self._time_source() * 1000)
            duplicate_time = now == self._last_time
            self._last_time = now

            time_chars = []
            for _ in range(8):
                time_chars.append(PUSH_CHARS[now % 64])
                now //= 64
            key = "".join(reversed(time_chars))

            if not duplicate_time:
                self._last_random = [self._rng.randrange(64) for _ in range(12)]
            else:
                # Same millisecond: increment the random part
                i = 11
                while i >= 0 and self._last_random[i] == 63:
                    self._last_random[i] = 0
                    i -= 1
                if i >= 0:
                    self._last_random[i] += 1

            return key + "".join(PUSH_CHARS[n] for n in self._last_random)


generate_push_key = PushKeyGenerator()


def split_record_path(db_path: str) -> list[str]:
    """Split a record path into its non-empty segments."""
    return [segment for segment in db_path.strip().split("/") if segment]


def collection_name(segments: list[str]) -> str:
    """Map record path segments to a backend collection name."""
    return ".".join(segments)


class RecordStore(ABC):
    """Variant-agnostic record store contract used by the orchestrators."""

    variant: str = ""

    def __init__(self, backend: ObjectStorageBackend):
        self._backend = backend

    @property
    def backend(self) -> ObjectStorageBackend:
        return self._backend

    @abstractmethod
    def write(self, db_path: str, record: dict[str, Any]) -> RecordRef:
        """Persist a new record under ``db_path``.

        Raises:
            RecordStoreUnavailableError: On transport errors
            RecordStoreError: If the backend rejects the write
        """
        pass

    def remove(self, db_path: str) -> None:
        """Remove the record stored at ``db_path``.

        Raises:
            RecordNotFoundError: If nothing is stored at db_path
            RecordStoreUnavailableError: On transport errors
        """
        collection, key = self._locate(db_path)
        deleted = self._call("remove", db_path, self._backend.delete_one, collection, {"_id": key})
        if not deleted:
            raise RecordNotFoundError(f"Record not found: {db_path}")
        logger.info(f"Removed {self.variant} record: {db_path}")

    def read(self, db_path: str) -> dict[str, Any] | None:
        """Return the record stored at ``db_path``, or None."""
        collection, key = self._locate(db_path)
        document = self._call("read", db_path, self._backend.find_one, collection, {"_id": key})
        if document is None:
            return None
        document.pop("_id", None)
        return document

    def server_timestamp(self) -> ServerTimestamp:
        """Sentinel resolved when the record is written (see ``ServerTimestamp``)."""
        return SERVER_TIMESTAMP

    def _locate(self, db_path: str) -> tuple[str, str]:
        segments = split_record_path(db_path)
        if len(segments) < 2:
            raise InvalidRecordPathError(
                f"Record path must name a collection and an item: {db_path!r}"
            )
        return collection_name(segments[:-1]), segments[-1]

    def _collection_for(self, db_path: str) -> str:
        segments = split_record_path(db_path)
        if not segments:
            raise InvalidRecordPathError(f"Empty record path: {db_path!r}")
        return collection_name(segments)

    def _prepare(self, record: dict[str, Any]) -> dict[str, Any]:
        """Resolve ``SERVER_TIMESTAMP`` placeholders to the current UTC time."""
        now = datetime.now(UTC)
        return {
            field: now if value is SERVER_TIMESTAMP else value for field, value in record.items()
        }

    def _call(self, action: str, db_path: str, fn, *args):
        try:
            return fn(*args)
        except ObjectStorageConnectionError as e:
            raise RecordStoreUnavailableError(
                f"Record store unavailable during {action} at {db_path}: {e}"
            ) from e
        except ObjectStorageError as e:
            raise RecordStoreError(f"Failed to {action} record at {db_path}: {e}") from e


class KeyedTreeRecordStore(RecordStore):
    """Record store that writes each record at a freshly generated push key."""

    variant = "keyed_tree"

    def __init__(
        self,
        backend: ObjectStorageBackend,
        key_generator: Callable[[], str] = generate_push_key,
    ):
        super().__init__(backend)
        self._generate_key = key_generator

    def write(self, db_path: str, record: dict[str, Any]) -> RecordRef:
        collection = self._collection_for(db_path)
        key = self._generate_key()
        document = {**self._prepare(record), "_id": key}

        self._call("write", db_path, self._backend.replace_one, collection, {"_id": key}, document, True)

        ref = RecordRef(key=key, path=f"{db_path.rstrip('/')}/{key}")
        logger.info(f"Wrote keyed_tree record: {ref.path}")
        return ref


class CollectionRecordStore(RecordStore):
    """Record store that appends records to a collection with generated ids."""

    variant = "collection"

    def write(self, db_path: str, record: dict[str, Any]) -> RecordRef:
        collection = self._collection_for(db_path)
        record_id = self._call("write", db_path, self._backend.insert_one, collection, self._prepare(record))

        ref = RecordRef(key=record_id, path=f"{db_path.rstrip('/')}/{record_id}", id=record_id)
        logger.info(f"Wrote collection record: {ref.path}")
        return ref


def create_record_store(
    backend: ObjectStorageBackend, use_collection: bool = False
) -> RecordStore:
    """Select the record-store variant for a deployment.

    Args:
        backend: Document backend the records are stored in
        use_collection: True for the Collection variant, False for KeyedTree

    Returns:
        Record store implementing the shared write/remove contract
    """
    if use_collection:
        return CollectionRecordStore(backend)
    return KeyedTreeRecordStore(backend)


# Custom exceptions


class RecordStoreError(Exception):
    """Base exception for record store errors."""

    pass


class RecordNotFoundError(RecordStoreError):
    """Raised when removing a record that does not exist."""

    pass


class RecordStoreUnavailableError(RecordStoreError):
    """Raised when the record store cannot be reached."""

    pass


class InvalidRecordPathError(RecordStoreError):
    """Raised when a record path cannot address a record."""

    pass
