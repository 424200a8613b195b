"""File upload and delete orchestration over a blob store and a record store."""

from filestore.files.delete import FileDeleter
from filestore.files.errors import (
    BlobDeleteFailedError,
    ErrorKind,
    FileStorageError,
    MetadataPersistFailedError,
    RecordDeleteFailedError,
    TransferFailedError,
)
from filestore.files.metadata import omit_absent, synthesize_metadata
from filestore.files.models import (
    DeleteRequest,
    DeleteResult,
    MetadataOptions,
    UploadRequest,
    UploadResult,
)
from filestore.files.progress import (
    ActionDispatchSink,
    LoggingProgressSink,
    ProgressChannel,
    ProgressEvent,
    ProgressSink,
)
from filestore.files.settings import StorageSettings
from filestore.files.storage import FileStorage
from filestore.files.upload import FileUploader, UploadOperation, UploadState

__all__ = [
    # Orchestration
    "FileStorage",
    "FileUploader",
    "FileDeleter",
    "UploadOperation",
    "UploadState",
    "StorageSettings",
    # Requests and results
    "UploadRequest",
    "UploadResult",
    "DeleteRequest",
    "DeleteResult",
    "MetadataOptions",
    # Metadata
    "synthesize_metadata",
    "omit_absent",
    # Progress
    "ProgressEvent",
    "ProgressSink",
    "ProgressChannel",
    "LoggingProgressSink",
    "ActionDispatchSink",
    # Errors
    "ErrorKind",
    "FileStorageError",
    "TransferFailedError",
    "MetadataPersistFailedError",
    "BlobDeleteFailedError",
    "RecordDeleteFailedError",
]
