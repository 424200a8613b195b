"""Storage backend implementations."""

from filestore.core.storage.backends.filesystem_backend import FilesystemBackend
from filestore.core.storage.backends.filesystem_object_backend import FilesystemObjectBackend
from filestore.core.storage.backends.minio_backend import MinIOBackend
from filestore.core.storage.backends.mongodb_backend import MongoDBBackend
from filestore.core.storage.backends.prefixed_backend import PrefixedBlobBackend

__all__ = [
    "FilesystemBackend",
    "FilesystemObjectBackend",
    "MinIOBackend",
    "MongoDBBackend",
    "PrefixedBlobBackend",
]
