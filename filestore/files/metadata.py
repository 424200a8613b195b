"""Metadata synthesis: turn a finished blob upload into the record to persist."""

from __future__ import annotations

from typing import Any

from filestore.files.models import MetadataFactory, MetadataOptions


def omit_absent(metadata: dict[str, Any] | None) -> dict[str, Any]:
    """Return a copy of ``metadata`` without fields whose value is None."""
    return {field: value for field, value in (metadata or {}).items() if value is not None}


def synthesize_metadata(
    snapshot_metadata: dict[str, Any] | None,
    download_locator: str | None,
    options: MetadataOptions | None = None,
    default_factory: MetadataFactory | None = None,
) -> dict[str, Any]:
    """Build the metadata record for an upload.

    A factory given in ``options`` takes precedence over ``default_factory``;
    whichever applies is called as ``factory(snapshot_metadata,
    download_locator, options)`` and its return value is the record, as is.
    Without a factory the backend's own metadata is used with absent (None)
    fields dropped.

    Args:
        snapshot_metadata: Backend-native metadata of the stored blob
        download_locator: Download locator of the blob, if any
        options: Per-call metadata options
        default_factory: Deployment-wide factory

    Returns:
        Metadata record
    """
    factory = (options.metadata_factory if options else None) or default_factory
    if callable(factory):
        return factory(snapshot_metadata, download_locator, options)

    return omit_absent(snapshot_metadata)
