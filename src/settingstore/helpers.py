"""Module-level accessors for applications embedding the settings store.

Bind a registry once at startup, then read settings anywhere::

    bind_registry(SettingsRegistry.from_config())
    timeout = setting("http.timeout", 30)
"""

from __future__ import annotations

from typing import Any, Optional

from .exceptions import KeyNotFound
from .services.registry import SettingsRegistry

_registry: Optional[SettingsRegistry] = None


def bind_registry(registry: Optional[SettingsRegistry]) -> None:
    """Set (or clear, with None) the registry used by the accessors."""

    global _registry
    _registry = registry


def get_registry() -> SettingsRegistry:
    """Return the bound registry."""

    if _registry is None:
        raise RuntimeError("No settings registry bound; call bind_registry() first")
    return _registry


def setting(key: str, default: Any = None) -> Any:
    """Typed value of ``key``; ``default`` if it is missing or unset."""

    try:
        return get_registry().get_value(key, default)
    except KeyNotFound:
        return default


def setting_as_string(key: str, default: Any = None) -> Any:
    """String rendering of ``key``; ``default`` if it is missing or unset."""

    try:
        return get_registry().get_value_as_string(key, default)
    except KeyNotFound:
        return default


__all__ = ["bind_registry", "get_registry", "setting", "setting_as_string"]
