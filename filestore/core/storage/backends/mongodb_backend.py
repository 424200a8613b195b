"""MongoDB backend implementation for object storage."""

from __future__ import annotations

import logging
from typing import Any

from bson import ObjectId
from pymongo import MongoClient
from pymongo.errors import (
    ConnectionFailure,
    OperationFailure,
    PyMongoError,
)
from pymongo.errors import (
    DuplicateKeyError as MongoDuplicateKeyError,
)

from filestore.core.storage.object import (
    DuplicateKeyError,
    InvalidQueryError,
    ObjectStorageBackend,
    ObjectStorageConnectionError,
    ObjectStorageError,
)

logger = logging.getLogger(__name__)


class MongoDBBackend(ObjectStorageBackend):
    """MongoDB implementation of object storage backend."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 27017,
        database: str = "filestore",
        username: str | None = None,
        password: str | None = None,
        **kwargs,
    ):
        """Initialize MongoDB backend.

        Args:
            host: MongoDB host
            port: MongoDB port
            database: Database name
            username: Optional username for authentication
            password: Optional password for authentication
            **kwargs: Additional arguments passed to MongoClient
        """
        self._database_name = database

        try:
            if username and password:
                uri = f"mongodb://{username}:{password}@{host}:{port}/"
            else:
                uri = f"mongodb://{host}:{port}/"

            self._client = MongoClient(uri, **kwargs)
            self._db = self._client[database]

            # Test connection
            self._client.admin.command("ping")
            logger.info(f"Connected to MongoDB database: {database}")

        except ConnectionFailure as e:
            raise ObjectStorageConnectionError(f"Failed to connect to MongoDB: {e}") from e

    def _get_collection(self, collection: str):
        """Get a collection object."""
        return self._db[collection]

    def _convert_id(self, document: dict[str, Any]) -> dict[str, Any]:
        """Convert MongoDB ObjectId to string."""
        if document and "_id" in document:
            document["_id"] = str(document["_id"])
        return document

    def _prepare_filter(self, filter: dict[str, Any] | None) -> dict[str, Any]:
        """Prepare filter, converting string IDs to ObjectId if needed."""
        if not filter:
            return {}

        # Push keys are never valid ObjectIds and stay strings
        filter = dict(filter)
        if isinstance(filter.get("_id"), str) and ObjectId.is_valid(filter["_id"]):
            filter["_id"] = ObjectId(filter["_id"])

        return filter

    def insert_one(self, collection: str, document: dict[str, Any]) -> str:
        """Insert a single document into MongoDB."""
        try:
            coll = self._get_collection(collection)
            # insert_one adds _id to the dict it is given
            result = coll.insert_one(dict(document))
            logger.debug(f"Inserted document into {collection}: {result.inserted_id}")
            return str(result.inserted_id)

        except MongoDuplicateKeyError as e:
            raise DuplicateKeyError(f"Duplicate key error: {e}") from e
        except ConnectionFailure as e:
            raise ObjectStorageConnectionError(f"Lost connection to MongoDB: {e}") from e
        except PyMongoError as e:
            raise ObjectStorageError(f"Failed to insert document: {e}") from e

    def find_one(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Find a single document in MongoDB."""
        try:
            coll = self._get_collection(collection)
            result = coll.find_one(self._prepare_filter(filter))
            return self._convert_id(result) if result else None

        except ConnectionFailure as e:
            raise ObjectStorageConnectionError(f"Lost connection to MongoDB: {e}") from e
        except PyMongoError as e:
            raise ObjectStorageError(f"Failed to find document: {e}") from e

    def replace_one(
        self,
        collection: str,
        filter: dict[str, Any],
        document: dict[str, Any],
        upsert: bool = False,
    ) -> tuple[int, int]:
        """Replace a single document in MongoDB."""
        try:
            coll = self._get_collection(collection)
            result = coll.replace_one(self._prepare_filter(filter), document, upsert=upsert)

            logger.debug(
                f"Replaced document in {collection}: "
                f"matched={result.matched_count}, modified={result.modified_count}"
            )
            return result.matched_count, result.modified_count

        except MongoDuplicateKeyError as e:
            raise DuplicateKeyError(f"Duplicate key error: {e}") from e
        except ConnectionFailure as e:
            raise ObjectStorageConnectionError(f"Lost connection to MongoDB: {e}") from e
        except OperationFailure as e:
            raise InvalidQueryError(f"Invalid replace operation: {e}") from e
        except PyMongoError as e:
            raise ObjectStorageError(f"Failed to replace document: {e}") from e

    def delete_one(self, collection: str, filter: dict[str, Any]) -> int:
        """Delete a single document from MongoDB."""
        try:
            coll = self._get_collection(collection)
            result = coll.delete_one(self._prepare_filter(filter))

            logger.debug(f"Deleted document from {collection}: count={result.deleted_count}")
            return result.deleted_count

        except ConnectionFailure as e:
            raise ObjectStorageConnectionError(f"Lost connection to MongoDB: {e}") from e
        except PyMongoError as e:
            raise ObjectStorageError(f"Failed to delete document: {e}") from e
