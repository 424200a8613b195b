"""Filesystem backend implementation for object storage.

Keeps one JSON file per document under ``<base_path>/<collection>/<_id>.json``.
Handy for local development and tests where no MongoDB server is around.
"""

from __future__ import annotations

import json
import logging
import secrets
from pathlib import Path
from typing import Any

from filestore.core.storage.object import (
    DuplicateKeyError,
    InvalidQueryError,
    ObjectStorageBackend,
    ObjectStorageError,
)

logger = logging.getLogger(__name__)


class FilesystemObjectBackend(ObjectStorageBackend):
    """Filesystem implementation of object storage backend."""

    def __init__(self, base_path: str | Path):
        """Initialize filesystem object backend.

        Args:
            base_path: Base directory path for storing documents
        """
        self._base_path = Path(base_path)
        self._base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized filesystem object backend at: {self._base_path}")

    def _collection_path(self, collection: str) -> Path:
        if not collection or "/" in collection or collection.startswith("."):
            raise InvalidQueryError(f"Invalid collection name: {collection!r}")
        return self._base_path / collection

    def _document_path(self, collection: str, document_id: str) -> Path:
        if not document_id or "/" in document_id or document_id.startswith("."):
            raise InvalidQueryError(f"Invalid document id: {document_id!r}")
        return self._collection_path(collection) / f"{document_id}.json"

    def _write(self, path: Path, document: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(document, f, indent=2, default=str)

    def _read(self, path: Path) -> dict[str, Any]:
        with open(path) as f:
            return json.load(f)

    def _iter_documents(self, collection: str):
        coll_path = self._collection_path(collection)
        if not coll_path.exists():
            return
        for path in sorted(coll_path.glob("*.json")):
            yield path, self._read(path)

    def _find_path(self, collection: str, filter: dict[str, Any] | None) -> Path | None:
        filter = filter or {}
        if set(filter) == {"_id"}:
            path = self._document_path(collection, str(filter["_id"]))
            return path if path.exists() else None

        for path, document in self._iter_documents(collection):
            if _matches(document, filter):
                return path
        return None

    def insert_one(self, collection: str, document: dict[str, Any]) -> str:
        """Insert a single document as a JSON file."""
        document_id = str(document.get("_id") or secrets.token_hex(12))
        path = self._document_path(collection, document_id)
        if path.exists():
            raise DuplicateKeyError(f"Duplicate key error: {collection}/{document_id}")

        try:
            self._write(path, {**document, "_id": document_id})
            logger.debug(f"Inserted document into {collection}: {document_id}")
            return document_id
        except OSError as e:
            raise ObjectStorageError(f"Failed to insert document: {e}") from e

    def find_one(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Find a single document."""
        try:
            path = self._find_path(collection, filter)
            return self._read(path) if path else None
        except (OSError, ValueError) as e:
            raise ObjectStorageError(f"Failed to find document: {e}") from e

    def replace_one(
        self,
        collection: str,
        filter: dict[str, Any],
        document: dict[str, Any],
        upsert: bool = False,
    ) -> tuple[int, int]:
        """Replace a single document, optionally inserting it."""
        try:
            path = self._find_path(collection, filter)
            if path is None:
                if not upsert:
                    return 0, 0
                document_id = str(document.get("_id") or filter.get("_id") or secrets.token_hex(12))
                self._write(
                    self._document_path(collection, document_id), {**document, "_id": document_id}
                )
                logger.debug(f"Upserted document into {collection}: {document_id}")
                return 0, 0

            document_id = path.stem
            self._write(path, {**document, "_id": document_id})
            logger.debug(f"Replaced document in {collection}: {document_id}")
            return 1, 1
        except OSError as e:
            raise ObjectStorageError(f"Failed to replace document: {e}") from e

    def delete_one(self, collection: str, filter: dict[str, Any]) -> int:
        """Delete a single document."""
        try:
            path = self._find_path(collection, filter)
            if path is None:
                return 0
            path.unlink()
            logger.debug(f"Deleted document from {collection}: {path.stem}")
            return 1
        except OSError as e:
            raise ObjectStorageError(f"Failed to delete document: {e}") from e


def _matches(document: dict[str, Any], filter: dict[str, Any] | None) -> bool:
    """Equality match on top-level fields."""
    return all(document.get(field) == value for field, value in (filter or {}).items())
