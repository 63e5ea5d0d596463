"""Conversion between stored setting text and typed values.

Every stored value is JSON text. Regex values go through an extra reversible
substitution first so backslashes and slashes are never touched by JSON
escaping: ``\\`` becomes :data:`BACKSLASH_PLACEHOLDER` and ``/`` becomes
:data:`SLASH_PLACEHOLDER`.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from .setting_types import SettingType

BACKSLASH_PLACEHOLDER = "§§bs:7f3a§§"
SLASH_PLACEHOLDER = "§§fs:c41e§§"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_FLAG_VALUES = (0, 1, "0", "1")


def _escape_pattern(pattern: str) -> str:
    return pattern.replace("\\", BACKSLASH_PLACEHOLDER).replace("/", SLASH_PLACEHOLDER)


def _unescape_pattern(text: str) -> str:
    return text.replace(BACKSLASH_PLACEHOLDER, "\\").replace(SLASH_PLACEHOLDER, "/")


def _strip_quote_layer(text: str) -> str:
    """Remove one pair of surrounding double quotes, if present."""
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return text[1:-1]
    return text


def _parse_int(text: str) -> int:
    match = _LEADING_INT.match(text.strip('"'))
    return int(match.group(1)) if match else 0


def as_flag(value: Any) -> Any:
    """Map the 0/1 forms a boolean rule accepts onto real booleans."""
    if not isinstance(value, bool) and value in _FLAG_VALUES:
        return bool(int(value))
    return value


def encode(value: Any, setting_type: SettingType | str) -> Optional[str]:
    """Encode a typed value into the text stored in the ``value`` column."""

    kind = SettingType.parse(setting_type)
    if value is None:
        return None
    if kind is SettingType.REGEX:
        return json.dumps(_escape_pattern(str(value)), ensure_ascii=False)
    if kind is SettingType.BOOLEAN:
        value = as_flag(value)
    if kind is SettingType.ARRAY and isinstance(value, tuple):
        value = list(value)
    return json.dumps(value, ensure_ascii=False)


def decode(text: Optional[str], setting_type: SettingType | str) -> Any:
    """Decode stored text under the declared type.

    Malformed array JSON is not caught; it means the row is inconsistent with
    its declared type.
    """

    kind = SettingType.parse(setting_type)
    if text is None:
        return None

    if kind is SettingType.ARRAY:
        return json.loads(text)
    if kind is SettingType.INTEGER:
        return _parse_int(text)
    if kind is SettingType.BOOLEAN:
        if text == "false":
            return False
        return bool(text)
    if kind is SettingType.REGEX:
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, str):
            return _unescape_pattern(parsed)
        return _strip_quote_layer(_unescape_pattern(text))

    try:
        parsed = json.loads(text)
    except ValueError:
        return text.strip('"')
    if isinstance(parsed, str):
        return parsed
    return text.strip('"')


def as_string(value: Any, setting_type: SettingType | str) -> str:
    """Render a decoded value for display without touching the stored text."""

    kind = SettingType.parse(setting_type)
    if value is None:
        return ""
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if kind in (SettingType.REGEX, SettingType.STRING):
        return _strip_quote_layer(_unescape_pattern(str(value)))
    return str(value)


@dataclass(frozen=True)
class TypedValue:
    """A value paired with its declared type."""

    type: SettingType
    value: Any

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", SettingType.parse(self.type))

    @classmethod
    def from_stored(cls, text: Optional[str], setting_type: SettingType | str) -> "TypedValue":
        kind = SettingType.parse(setting_type)
        return cls(kind, decode(text, kind))

    def encode(self) -> Optional[str]:
        return encode(self.value, self.type)

    def as_string(self) -> str:
        return as_string(self.value, self.type)


__all__ = [
    "BACKSLASH_PLACEHOLDER",
    "SLASH_PLACEHOLDER",
    "TypedValue",
    "as_string",
    "decode",
    "encode",
]
