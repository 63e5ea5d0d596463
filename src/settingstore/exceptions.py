"""Exceptions raised by the settings store."""

from __future__ import annotations

from typing import Any


class SettingsError(Exception):
    """Base exception for the settings store."""

    def __init__(
        self,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class KeyNotFound(SettingsError):
    """Raised when a setting key is not present in the store."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(
            message=f"key {key} is not found in the settings",
            error_code="KEY_NOT_FOUND",
            details={"key": key},
        )


class ValidationError(SettingsError):
    """Raised when a candidate value fails its effective rule.

    ``errors`` maps each setting key to the rendered messages of every
    constraint the value violated.
    """

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = {key: list(messages) for key, messages in errors.items()}
        first = next(iter(self.messages), "The given value was invalid.")
        extra = len(self.messages) - 1
        message = first if extra <= 0 else f"{first} (and {extra} more error{'s' if extra > 1 else ''})"
        super().__init__(
            message=message,
            error_code="VALIDATION_FAILED",
            details={"errors": self.errors},
        )

    @property
    def messages(self) -> list[str]:
        """All messages, flattened in key order."""
        return [message for messages in self.errors.values() for message in messages]


class ConfigurationError(SettingsError):
    """Raised for unknown type names, forbidden type changes and bad configuration."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, error_code="CONFIGURATION_ERROR", details=details)


class CacheError(SettingsError):
    """Base exception for cache backend operations."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, error_code="CACHE_ERROR", details=details)


class CacheConnectionError(CacheError):
    """Raised when the shared cache backend is unreachable."""


class CacheKeyError(CacheError):
    """Raised when a cache key is empty or otherwise unusable."""


__all__ = [
    "CacheConnectionError",
    "CacheError",
    "CacheKeyError",
    "ConfigurationError",
    "KeyNotFound",
    "SettingsError",
    "ValidationError",
]
