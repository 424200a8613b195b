"""File storage facade wiring a profile into an uploader/deleter pair."""

from __future__ import annotations

import logging

from filestore.core.storage.records import RecordStore, create_record_store
from filestore.core.storage.registry import StorageBackendRegistry, get_default_registry
from filestore.core.storage.store import BlobStore
from filestore.files.delete import FileDeleter
from filestore.files.models import DeleteResult, UploadRequest, UploadResult
from filestore.files.progress import ProgressSink
from filestore.files.settings import StorageSettings
from filestore.files.upload import FileUploader, UploadOperation

logger = logging.getLogger(__name__)


class FileStorage:
    """Uploads and deletes files against one configured storage profile.

    Examples:
        >>> storage = FileStorage.from_name("local.avatars")
        >>> result = storage.upload(
        ...     UploadRequest(path="u1", filename="me.png", file=data, db_path="meta/avatars")
        ... )
        >>> storage.delete("u1/me.png", db_path=f"meta/avatars/{result.key}")
    """

    def __init__(
        self,
        blob_store: BlobStore,
        record_store: RecordStore | None = None,
        settings: StorageSettings | None = None,
    ):
        self.settings = settings or StorageSettings()
        self.blob_store = blob_store
        self.record_store = record_store
        self.uploader = FileUploader(blob_store, record_store, self.settings)
        self.deleter = FileDeleter(blob_store, record_store)

    @classmethod
    def from_name(cls, name: str, registry: StorageBackendRegistry | None = None) -> FileStorage:
        """Build the storage of a named profile.

        Args:
            name: Profile name, optionally dotted to namespace blob keys
            registry: Registry to resolve the profile with (default registry if None)

        Raises:
            BackendNotFoundError: If the profile is not configured
            BackendConfigError: If a backend configuration is invalid
            ConfigError: If the upload settings are invalid
        """
        registry = registry or get_default_registry()
        profile = registry.profile(name)
        settings = StorageSettings.from_profile(profile)

        blob_store = BlobStore(
            registry.get_backend(name),
            bucket=profile.get("bucket"),
            locator_mode=settings.download_locator,
            locator_expiry=settings.locator_expiry,
            native_local_path_prefix=settings.native_local_path_prefix,
        )

        object_backend = registry.get_object_backend(name)
        record_store = None
        if object_backend is not None:
            record_store = create_record_store(object_backend, settings.use_collection_record_store)

        logger.info(
            f"File storage '{name}' ready "
            f"(record store: {record_store.variant if record_store else 'none'})"
        )
        return cls(blob_store, record_store, settings)

    def prepare(self, request: UploadRequest, sink: ProgressSink | None = None) -> UploadOperation:
        return self.uploader.prepare(request, sink)

    def upload(self, request: UploadRequest, sink: ProgressSink | None = None) -> UploadResult:
        return self.uploader.upload(request, sink)

    def delete(self, path: str, db_path: str | None = None) -> DeleteResult:
        return self.deleter.delete(path, db_path)
