"""Storage abstractions for blob and record storage."""

from filestore.core.storage.blob import (
    BlobMetadata,
    BlobNotFoundError,
    BlobStorageBackend,
    BlobStorageConnectionError,
    BlobStorageError,
    BlobUploadMetadata,
    InvalidUploadSourceError,
    UploadCancelledError,
)
from filestore.core.storage.object import (
    DocumentNotFoundError,
    DuplicateKeyError,
    InvalidQueryError,
    ObjectStorageBackend,
    ObjectStorageConnectionError,
    ObjectStorageError,
)
from filestore.core.storage.records import (
    SERVER_TIMESTAMP,
    CollectionRecordStore,
    InvalidRecordPathError,
    KeyedTreeRecordStore,
    RecordNotFoundError,
    RecordRef,
    RecordStore,
    RecordStoreError,
    RecordStoreUnavailableError,
    ServerTimestamp,
    create_record_store,
    generate_push_key,
)
from filestore.core.storage.registry import (
    BackendConfigError,
    BackendNotFoundError,
    StorageBackendRegistry,
    get_default_registry,
)
from filestore.core.storage.store import BlobStore
from filestore.core.storage.task import TaskSnapshot, TaskState, UploadTask

__all__ = [
    # Blob storage
    "BlobStore",
    "BlobStorageBackend",
    "BlobMetadata",
    "BlobUploadMetadata",
    "BlobStorageError",
    "BlobNotFoundError",
    "BlobStorageConnectionError",
    "InvalidUploadSourceError",
    "UploadCancelledError",
    "UploadTask",
    "TaskSnapshot",
    "TaskState",
    # Object storage
    "ObjectStorageBackend",
    "ObjectStorageError",
    "DocumentNotFoundError",
    "DuplicateKeyError",
    "ObjectStorageConnectionError",
    "InvalidQueryError",
    # Record stores
    "RecordStore",
    "KeyedTreeRecordStore",
    "CollectionRecordStore",
    "RecordRef",
    "RecordStoreError",
    "RecordNotFoundError",
    "RecordStoreUnavailableError",
    "InvalidRecordPathError",
    "ServerTimestamp",
    "SERVER_TIMESTAMP",
    "create_record_store",
    "generate_push_key",
    # Registry
    "StorageBackendRegistry",
    "BackendConfigError",
    "BackendNotFoundError",
    "get_default_registry",
]
