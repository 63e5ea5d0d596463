"""Service layer."""

from .registry import SettingsRegistry, coerce_input

__all__ = ["SettingsRegistry", "coerce_input"]
