"""Configuration loading for storage profiles.

Storage profiles live in a plain Python module (``configs/file_storage.py`` by
default) as a ``CONFIGURATION`` dict mapping profile names to settings. The
module is imported with importlib so deployments can point at their own
config module without code changes.

Profiles may extend another profile with the "__inherits__" key; nested
dicts (such as ``record_store``) are merged one level deep so a child can
override a single record-store field.
"""

from __future__ import annotations

import importlib
import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

INHERITS_KEY = "__inherits__"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class ConfigError(Exception):
    """Raised when configuration loading or resolution fails."""

    pass


def load_config_from_module(
    module_path: str,
    config_name: str = "CONFIGURATION",
    default: Any | None = None,
) -> Any:
    """Load a configuration object from a Python module.

    Args:
        module_path: Dotted module path (e.g., "configs.file_storage")
        config_name: Attribute holding the configuration
        default: Value returned when the module or attribute is missing

    Returns:
        The configuration object, or default
    """
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        logger.warning(f"Could not import module '{module_path}': {e}")
        return default

    if not hasattr(module, config_name):
        logger.warning(f"Module '{module_path}' does not have attribute '{config_name}'")
        return default

    logger.debug(f"Loaded configuration from {module_path}.{config_name}")
    return getattr(module, config_name)


def resolve_config_inheritance(config_dict: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Resolve "__inherits__" chains in a profile dictionary.

    Args:
        config_dict: Profile name -> profile settings

    Returns:
        New dictionary with every profile fully expanded

    Raises:
        ConfigError: On circular inheritance or a missing parent

    Examples:
        >>> resolved = resolve_config_inheritance({
        ...     "local": {"type": "filesystem", "base_path": "/srv/blobs"},
        ...     "local.collection": {"__inherits__": "local", "use_collection_record_store": True},
        ... })
        >>> resolved["local.collection"]["base_path"]
        '/srv/blobs'
    """
    resolved: dict[str, dict[str, Any]] = {}

    def _resolve(name: str, chain: tuple[str, ...]) -> dict[str, Any]:
        if name in chain:
            raise ConfigError(f"Circular inheritance detected: {' -> '.join(chain + (name,))}")
        if name in resolved:
            return resolved[name]

        profile = config_dict[name]
        parent_name = profile.get(INHERITS_KEY)
        if parent_name is None:
            resolved[name] = dict(profile)
            return resolved[name]

        if parent_name not in config_dict:
            raise ConfigError(
                f"Configuration '{name}' inherits from '{parent_name}', "
                f"but '{parent_name}' not found"
            )

        merged = dict(_resolve(parent_name, chain + (name,)))
        for key, value in profile.items():
            if key == INHERITS_KEY:
                continue
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value

        logger.debug(f"Resolved inheritance for '{name}' from '{parent_name}'")
        resolved[name] = merged
        return merged

    for name in config_dict:
        _resolve(name, ())

    return resolved


def load_and_resolve_config(
    module_path: str,
    config_name: str = "CONFIGURATION",
    default: dict[str, dict[str, Any]] | None = None,
) -> dict[str, dict[str, Any]]:
    """Load profiles from a module and resolve their inheritance.

    Raises:
        ConfigError: If inheritance cannot be resolved
    """
    raw_config = load_config_from_module(module_path, config_name, default)

    if not isinstance(raw_config, dict):
        logger.warning(f"Invalid configuration loaded from {module_path}, using default")
        return dict(default or {})

    resolved = resolve_config_inheritance(raw_config)
    logger.info(f"Loaded and resolved {len(resolved)} configurations from {module_path}")
    return resolved


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean environment variable.

    Raises:
        ConfigError: If the value is not a recognised boolean
    """
    value = os.getenv(name)
    if value is None:
        return default

    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigError(f"Environment variable {name} is not a boolean: {value!r}")


def env_int(name: str, default: int) -> int:
    """Read an integer environment variable.

    Raises:
        ConfigError: If the value is not an integer
    """
    value = os.getenv(name)
    if value is None or not value.strip():
        return default

    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"Environment variable {name} is not an integer: {value!r}") from e
