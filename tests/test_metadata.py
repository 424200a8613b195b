"""Tests for metadata record synthesis."""

from __future__ import annotations

from unittest.mock import Mock

from filestore.files.metadata import omit_absent, synthesize_metadata
from filestore.files.models import MetadataOptions


class TestSynthesizeMetadata:
    """Test suite for synthesize_metadata."""

    def test_absent_fields_are_dropped(self):
        """Test that None values never reach the record."""
        assert synthesize_metadata({"a": 1, "b": None}, None) == {"a": 1}

    def test_falsy_values_are_kept(self):
        """Test that only None counts as absent."""
        record = synthesize_metadata({"size": 0, "name": "", "flag": False}, "https://x")

        assert record == {"size": 0, "name": "", "flag": False}

    def test_no_metadata(self):
        assert synthesize_metadata(None, None) == {}

    def test_default_factory(self):
        """Test that the deployment factory receives metadata, locator and options."""
        factory = Mock(return_value={"custom": True})

        record = synthesize_metadata({"a": 1}, "https://x", None, default_factory=factory)

        assert record == {"custom": True}
        factory.assert_called_once_with({"a": 1}, "https://x", None)

    def test_per_call_factory_wins(self):
        """Test that a factory in the options overrides the default."""
        default = Mock(return_value={"default": True})
        options = MetadataOptions(
            metadata_factory=lambda meta, locator, opts: {"url": locator, **opts.extra},
            extra={"owner": "u1"},
        )

        record = synthesize_metadata({"a": 1}, "https://x", options, default_factory=default)

        assert record == {"url": "https://x", "owner": "u1"}
        default.assert_not_called()

    def test_factory_output_is_not_filtered(self):
        """Test that a factory's record is persisted verbatim."""
        record = synthesize_metadata(
            {"a": 1}, None, default_factory=lambda meta, locator, opts: {"url": locator}
        )

        assert record == {"url": None}

    def test_input_is_not_mutated(self):
        metadata = {"a": 1, "b": None}
        omit_absent(metadata)
        assert metadata == {"a": 1, "b": None}
