"""Value objects exchanged between the registry and its callers."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

from ..codec import TypedValue
from ..exceptions import ConfigurationError
from ..setting_types import SettingType


@dataclass(frozen=True)
class SettingRecord:
    """Read-only view of a stored setting with its value decoded."""

    key: str
    value: Any
    type: SettingType
    scope: Optional[str] = None
    editable: bool = True
    rules: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SettingRecord":
        """Build from a mapping of raw column values (``value`` still encoded)."""
        kind = SettingType.parse(row["type"])
        editable = row.get("editable")
        return cls(
            key=row["key"],
            value=TypedValue.from_stored(row.get("value"), kind).value,
            type=kind,
            scope=row.get("scope"),
            editable=True if editable is None else bool(editable),
            rules=row.get("rules"),
            description=row.get("description"),
        )

    def as_string(self) -> str:
        return TypedValue(self.type, self.value).as_string()


@dataclass(frozen=True)
class SettingAttributes:
    """Attributes accepted by ``create``/``set``, starting from the defaults."""

    type: SettingType = SettingType.STRING
    scope: Optional[str] = None
    editable: bool = True
    rules: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    def merged(self, overrides: Mapping[str, Any]) -> "SettingAttributes":
        """Apply caller overrides field by field.

        Raises:
            ConfigurationError: for unknown attribute names or type names.
        """
        unknown = set(overrides) - self.names()
        if unknown:
            raise ConfigurationError(
                f"Unknown setting attribute(s): {', '.join(sorted(unknown))}",
                details={"attributes": sorted(unknown)},
            )
        changes = dict(overrides)
        if "type" in changes:
            changes["type"] = SettingType.parse(changes["type"])
        if "editable" in changes:
            changes["editable"] = True if changes["editable"] is None else bool(changes["editable"])
        return replace(self, **changes)


__all__ = ["SettingAttributes", "SettingRecord"]
