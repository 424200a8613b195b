"""Registry for named storage profiles.

A profile names a blob backend and, optionally, the document backend that
holds upload metadata records. Profiles are looked up by name with optional
dotted namespacing: ``"dev.images"`` resolves profile ``"dev"`` and prefixes
every blob key with ``images/``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from filestore.core.storage.backends.filesystem_backend import FilesystemBackend
from filestore.core.storage.backends.filesystem_object_backend import FilesystemObjectBackend
from filestore.core.storage.backends.minio_backend import MinIOBackend
from filestore.core.storage.backends.mongodb_backend import MongoDBBackend
from filestore.core.storage.backends.prefixed_backend import PrefixedBlobBackend
from filestore.core.storage.blob import BlobStorageBackend
from filestore.core.storage.object import ObjectStorageBackend
from filestore.core.utils.config import load_and_resolve_config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_MODULE = "configs.file_storage"


class BackendConfigError(Exception):
    """Raised when backend configuration is invalid."""

    pass


class BackendNotFoundError(Exception):
    """Raised when a named backend is not found in configuration."""

    pass


def _require(config: dict[str, Any], fields: list[str], label: str) -> None:
    missing = [f for f in fields if not config.get(f)]
    if missing:
        raise BackendConfigError(f"{label} missing required fields: {', '.join(missing)}")


class StorageBackendRegistry:
    """Registry resolving profile names to configured storage backends.

    Examples:
        >>> registry = StorageBackendRegistry()
        >>> blobs = registry.get_backend("dev.images")
        >>> records = registry.get_object_backend("dev")
    """

    def __init__(self, configuration: dict[str, dict[str, Any]] | None = None):
        """Initialize the registry.

        Args:
            configuration: Profile configuration dict. If None, loads and
                resolves ``CONFIGURATION`` from configs/file_storage.py
        """
        if configuration is None:
            configuration = load_and_resolve_config(
                DEFAULT_CONFIG_MODULE,
                config_name="CONFIGURATION",
                default={},
            )

        self._config = configuration
        self._backend_cache: dict[str, BlobStorageBackend] = {}
        self._object_cache: dict[str, ObjectStorageBackend | None] = {}

    def parse_name(self, name: str) -> tuple[str, str]:
        """Parse a profile name into base name and blob prefix.

        Examples:
            >>> registry.parse_name("dev")
            ("dev", "")
            >>> registry.parse_name("dev.images.thumbnails")
            ("dev", "images/thumbnails")
        """
        parts = name.split(".")
        return parts[0], "/".join(parts[1:])

    def profile(self, name: str) -> dict[str, Any]:
        """Return the resolved configuration of a profile.

        Raises:
            BackendNotFoundError: If the base name is not configured
        """
        base_name, _ = self.parse_name(name)
        if base_name not in self._config:
            available = ", ".join(self._config.keys())
            raise BackendNotFoundError(
                f"Backend '{base_name}' not found in configuration. "
                f"Available backends: {available or 'none'}"
            )
        return self._config[base_name]

    def create_backend(self, config: dict[str, Any]) -> BlobStorageBackend:
        """Create a blob backend instance from configuration.

        Raises:
            BackendConfigError: If configuration is invalid
        """
        backend_type = config.get("type")

        if not backend_type:
            raise BackendConfigError("Backend configuration must specify 'type'")

        if backend_type == "filesystem":
            _require(config, ["base_path"], "Filesystem backend")
            return FilesystemBackend(base_path=Path(config["base_path"]))

        if backend_type == "minio":
            _require(config, ["endpoint", "access_key", "secret_key", "bucket"], "MinIO backend")
            return MinIOBackend(
                endpoint=config["endpoint"],
                access_key=config["access_key"],
                secret_key=config["secret_key"],
                bucket=config["bucket"],
                secure=config.get("secure", True),
                region=config.get("region"),
                prefix=config.get("prefix"),
            )

        raise BackendConfigError(f"Unknown backend type: {backend_type}")

    def create_object_backend(self, config: dict[str, Any] | None) -> ObjectStorageBackend | None:
        """Create the record-store document backend, or None when not configured.

        Raises:
            BackendConfigError: If configuration is invalid
        """
        if not config:
            return None

        store_type = config.get("type")
        if store_type == "filesystem":
            _require(config, ["base_path"], "Filesystem record store")
            return FilesystemObjectBackend(base_path=Path(config["base_path"]))

        if store_type == "mongodb":
            return MongoDBBackend(
                host=config.get("host", "localhost"),
                port=int(config.get("port", 27017)),
                database=config.get("database", "filestore"),
                username=config.get("username"),
                password=config.get("password"),
            )

        raise BackendConfigError(f"Unknown record store type: {store_type}")

    def get_backend(self, name: str, use_cache: bool = True) -> BlobStorageBackend:
        """Get a blob backend by profile name.

        Dotted names return the base backend wrapped with a key prefix.

        Raises:
            BackendNotFoundError: If base name not found in configuration
            BackendConfigError: If backend configuration is invalid
        """
        if use_cache and name in self._backend_cache:
            return self._backend_cache[name]

        base_name, prefix = self.parse_name(name)
        config = self.profile(base_name)

        if use_cache and base_name in self._backend_cache:
            base_backend = self._backend_cache[base_name]
        else:
            base_backend = self.create_backend(config)
            if use_cache:
                self._backend_cache[base_name] = base_backend

        backend = PrefixedBlobBackend(base_backend, prefix) if prefix else base_backend

        if use_cache:
            self._backend_cache[name] = backend

        logger.info(f"Created backend for '{name}' (base: {base_name}, prefix: {prefix or 'none'})")
        return backend

    def get_object_backend(self, name: str, use_cache: bool = True) -> ObjectStorageBackend | None:
        """Get the record-store document backend of a profile (None if absent)."""
        base_name, _ = self.parse_name(name)
        if use_cache and base_name in self._object_cache:
            return self._object_cache[base_name]

        backend = self.create_object_backend(self.profile(base_name).get("record_store"))
        if use_cache:
            self._object_cache[base_name] = backend
        return backend


# Global registry instance
_default_registry: StorageBackendRegistry | None = None


def get_default_registry() -> StorageBackendRegistry:
    """Get the default global registry instance."""
    global _default_registry
    if _default_registry is None:
        _default_registry = StorageBackendRegistry()
    return _default_registry
