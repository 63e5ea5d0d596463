"""Typed key/value settings store."""

from __future__ import annotations

from .config import BaseConfig
from .exceptions import ConfigurationError, KeyNotFound, SettingsError, ValidationError
from .helpers import bind_registry, setting, setting_as_string
from .services.registry import SettingsRegistry
from .setting_types import SettingType

__all__ = [
    "BaseConfig",
    "ConfigurationError",
    "KeyNotFound",
    "SettingType",
    "SettingsError",
    "SettingsRegistry",
    "ValidationError",
    "bind_registry",
    "setting",
    "setting_as_string",
]
