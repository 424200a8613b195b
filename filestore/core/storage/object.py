"""Object storage abstraction for document/JSON data.

Document database backends (MongoDB, local JSON files) that the record stores
in ``filestore.core.storage.records`` persist upload metadata into.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ObjectStorageBackend(ABC):
    """Abstract base class for object/document storage backends.

    This interface provides the document database operations needed to store
    and look up structured metadata records.
    """

    @abstractmethod
    def insert_one(self, collection: str, document: dict[str, Any]) -> str:
        """Insert a single document.

        Args:
            collection: Collection/table name
            document: Document to insert (not modified)

        Returns:
            ID of the inserted document
        """
        pass

    @abstractmethod
    def find_one(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Find a single document.

        Args:
            collection: Collection/table name
            filter: Query filter (MongoDB-style equality match)

        Returns:
            Document if found, None otherwise
        """
        pass

    @abstractmethod
    def replace_one(
        self,
        collection: str,
        filter: dict[str, Any],
        document: dict[str, Any],
        upsert: bool = False,
    ) -> tuple[int, int]:
        """Replace a single document.

        Args:
            collection: Collection/table name
            filter: Query filter to match document
            document: New document to replace with
            upsert: Insert if not found

        Returns:
            Tuple of (matched_count, modified_count)
        """
        pass

    @abstractmethod
    def delete_one(self, collection: str, filter: dict[str, Any]) -> int:
        """Delete a single document.

        Returns:
            Number of documents deleted (0 or 1)
        """
        pass


# Custom exceptions


class ObjectStorageError(Exception):
    """Base exception for object storage errors."""

    pass


class DocumentNotFoundError(ObjectStorageError):
    """Raised when a document is not found."""

    pass


class DuplicateKeyError(ObjectStorageError):
    """Raised when inserting a document with a duplicate unique key."""

    pass


class ObjectStorageConnectionError(ObjectStorageError):
    """Raised when connection to storage backend fails."""

    pass


class InvalidQueryError(ObjectStorageError):
    """Raised when a query is invalid."""

    pass
