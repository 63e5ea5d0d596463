"""Declared setting types."""

from __future__ import annotations

from enum import Enum

from .exceptions import ConfigurationError

_ALIASES = {
    "str": "string",
    "int": "integer",
    "bool": "boolean",
    "arr": "array",
}


class SettingType(str, Enum):
    """Types a setting may declare. Fixed once the setting exists."""

    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    REGEX = "regex"

    @classmethod
    def parse(cls, name: "str | SettingType | None") -> "SettingType":
        """Resolve a type name (or alias) to its enum member.

        Raises:
            ConfigurationError: if the name is not a known type.
        """
        if isinstance(name, SettingType):
            return name
        if not isinstance(name, str):
            raise ConfigurationError(f"Unsupported setting type: {name!r}", details={"type": name})
        normalized = name.strip().lower()
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ConfigurationError(
                f"Unsupported setting type: {name!r}", details={"type": name}
            ) from None

    def __str__(self) -> str:
        return self.value


__all__ = ["SettingType"]
