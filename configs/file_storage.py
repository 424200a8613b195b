"""File storage profile configuration.

``CONFIGURATION`` maps profile names to a blob backend, an optional record
store for upload metadata, and the upload settings of that deployment.

Example usage:
    from filestore.files import FileStorage

    storage = FileStorage.from_name("local")
    result = storage.upload(UploadRequest(path="images", filename="a.png", file=data,
                                          db_path="meta/images"))

    # Blob keys under a namespace
    storage = FileStorage.from_name("local.avatars")

Profile keys:
    type                              "filesystem" or "minio" (blob backend)
    record_store                      {"type": "filesystem" | "mongodb", ...} or None
    use_collection_record_store       Collection ids instead of keyed-tree push keys
    download_locator                  "presigned" or "none"
    download_locator_expiry_seconds   Lifetime of presigned download URLs
    native_local_path_prefix          Device-local path prefix eligible for streaming
    metadata_factory                  Callable building the persisted metadata record

Environment overrides:
    FILESTORE_BACKEND=minio                   switch the "default" profile to MinIO/MongoDB
    FILESTORE_USE_COLLECTION_RECORD_STORE=1   use the Collection record-store variant
    BLOB_STORAGE_PATH, RECORD_STORAGE_PATH    filesystem roots
    MINIO_*, MONGODB_*                        connection parameters

Profiles can extend each other with "__inherits__".
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from filestore.core.utils.config import env_flag, env_int
from filestore.core.utils.env import load_env_file_if_present

load_env_file_if_present()  # Load .env file if present
PROJECT_ROOT = Path(__file__).resolve().parents[1]

DEFAULT_BLOB_PATH = Path(
    os.environ.get("BLOB_STORAGE_PATH", PROJECT_ROOT / "var" / "blob_storage")
).expanduser()
DEFAULT_RECORD_PATH = Path(
    os.environ.get("RECORD_STORAGE_PATH", PROJECT_ROOT / "var" / "record_storage")
).expanduser()


def _build_minio_config() -> dict[str, Any]:
    """Return a MinIO blob backend configuration."""
    return {
        "type": "minio",
        "endpoint": os.getenv("MINIO_ENDPOINT", "localhost:9000"),
        "access_key": os.getenv("MINIO_ACCESS_KEY", "minioadmin"),
        "secret_key": os.getenv("MINIO_SECRET_KEY", "minioadmin"),
        "bucket": os.getenv("MINIO_BUCKET", "uploads"),
        "secure": env_flag("MINIO_SECURE", False),
    }


def _build_mongodb_config() -> dict[str, Any]:
    """Return a MongoDB record store configuration."""
    return {
        "type": "mongodb",
        "host": os.getenv("MONGODB_HOST", "localhost"),
        "port": env_int("MONGODB_PORT", 27017),
        "database": os.getenv("MONGODB_DATABASE", "filestore"),
        "username": os.getenv("MONGODB_USERNAME"),
        "password": os.getenv("MONGODB_PASSWORD"),
    }


def _build_default_profile() -> dict[str, Any]:
    """Determine the default profile from FILESTORE_BACKEND."""
    backend_type = os.getenv("FILESTORE_BACKEND", "filesystem").strip().lower()
    if backend_type == "minio":
        profile = {**_build_minio_config(), "record_store": _build_mongodb_config()}
    else:
        profile = {
            "type": "filesystem",
            "base_path": str(DEFAULT_BLOB_PATH),
            "record_store": {"type": "filesystem", "base_path": str(DEFAULT_RECORD_PATH)},
        }

    profile["use_collection_record_store"] = env_flag("FILESTORE_USE_COLLECTION_RECORD_STORE", False)
    profile["download_locator"] = "presigned"
    profile["download_locator_expiry_seconds"] = env_int(
        "FILESTORE_LOCATOR_EXPIRY_SECONDS", 7 * 24 * 3600
    )
    return profile


CONFIGURATION = {
    "default": _build_default_profile(),
    # Local filesystem blobs + JSON metadata records
    "local": {
        "type": "filesystem",
        "base_path": str(DEFAULT_BLOB_PATH),
        "record_store": {"type": "filesystem", "base_path": str(DEFAULT_RECORD_PATH)},
        "use_collection_record_store": False,
        "download_locator": "presigned",
    },
    # Same as local, Collection-style record ids
    "local_collection": {
        "__inherits__": "local",
        "use_collection_record_store": True,
    },
    # Blobs only, no metadata records
    "blobs_only": {
        "type": "filesystem",
        "base_path": str(DEFAULT_BLOB_PATH),
        "record_store": None,
    },
    # MinIO + MongoDB
    "remote": {
        **_build_minio_config(),
        "record_store": _build_mongodb_config(),
        "use_collection_record_store": True,
        "download_locator": "presigned",
    },
    # Temporary storage
    "tmp": {
        "type": "filesystem",
        "base_path": "/tmp/filestore/blobs",
        "record_store": {"type": "filesystem", "base_path": "/tmp/filestore/records"},
        "download_locator": "none",
    },
}
