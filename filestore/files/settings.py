"""Deployment settings for the upload and delete orchestrators."""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from filestore.core.storage.blob import LOCATOR_MODES, LOCATOR_PRESIGNED
from filestore.core.utils.config import ConfigError
from filestore.files.models import MetadataFactory


@dataclass(frozen=True)
class StorageSettings:
    """Settings fixed for the lifetime of a FileUploader/FileDeleter pair."""

    use_collection_record_store: bool = False
    metadata_factory: MetadataFactory | None = None
    native_local_path_prefix: str | None = None
    download_locator: str = LOCATOR_PRESIGNED
    download_locator_expiry_seconds: int = 7 * 24 * 3600

    def __post_init__(self) -> None:
        if self.download_locator not in LOCATOR_MODES:
            raise ConfigError(
                f"download_locator must be one of {', '.join(LOCATOR_MODES)}, "
                f"got {self.download_locator!r}"
            )
        if self.download_locator_expiry_seconds <= 0:
            raise ConfigError("download_locator_expiry_seconds must be positive")

    @property
    def locator_expiry(self) -> timedelta:
        return timedelta(seconds=self.download_locator_expiry_seconds)

    @classmethod
    def from_profile(cls, profile: dict[str, Any]) -> StorageSettings:
        """Build settings from a resolved storage profile.

        ``metadata_factory`` may be a callable or a "module:attribute" string.
        """
        factory = profile.get("metadata_factory")
        if isinstance(factory, str):
            factory = _import_callable(factory)

        return cls(
            use_collection_record_store=bool(profile.get("use_collection_record_store", False)),
            metadata_factory=factory,
            native_local_path_prefix=profile.get("native_local_path_prefix"),
            download_locator=profile.get("download_locator", LOCATOR_PRESIGNED),
            download_locator_expiry_seconds=int(
                profile.get("download_locator_expiry_seconds", 7 * 24 * 3600)
            ),
        )


def _import_callable(reference: str) -> MetadataFactory:
    module_path, _, attribute = reference.partition(":")
    if not module_path or not attribute:
        raise ConfigError(f"metadata_factory must look like 'module:attribute', got {reference!r}")

    try:
        factory = getattr(importlib.import_module(module_path), attribute)
    except (ImportError, AttributeError) as e:
        raise ConfigError(f"Cannot load metadata_factory {reference!r}: {e}") from e

    if not callable(factory):
        raise ConfigError(f"metadata_factory {reference!r} is not callable")
    return factory
