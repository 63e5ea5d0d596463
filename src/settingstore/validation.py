"""Validation of candidate setting values against their stored rules."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional

from . import rules as rule_engine
from .exceptions import ValidationError
from .setting_types import SettingType


def effective_rule(rules: Optional[str], setting_type: SettingType | str) -> str:
    """Combine a row's rule text with its type.

    Regex settings only ever need to be strings; any stored rule text is
    ignored for them.
    """

    kind = SettingType.parse(setting_type)
    if kind is SettingType.REGEX:
        return "string"
    rules = (rules or "").strip().strip("|")
    if not rules:
        return kind.value
    return f"{rules}|{kind.value}"


def build_validation_rules(rows: Iterable[Any]) -> dict[str, str]:
    """Map each row's key to its effective rule in a single pass.

    ``rows`` may hold anything with ``key``, ``rules`` and ``type`` attributes.
    """

    return {row.key: effective_rule(row.rules, row.type) for row in rows}


class SettingsValidator:
    """Check candidate values against a key -> rule mapping.

    The mapping is fetched through ``rules_provider`` on every call so the
    validator always sees the registry's current (cached) rule map.
    """

    def __init__(self, rules_provider: Callable[[], Mapping[str, str]]):
        self._rules_provider = rules_provider

    def errors_for(self, key: str, value: Any) -> list[str]:
        rule = self._rules_provider().get(key)
        if rule is None:
            return []
        return rule_engine.check(key, value, rule)

    def passes(self, key: str, value: Any) -> bool:
        """Non-throwing probe."""
        return not self.errors_for(key, value)

    def validate(self, key: str, value: Any) -> None:
        """Raise :class:`ValidationError` if ``value`` breaks any constraint."""
        errors = self.errors_for(key, value)
        if errors:
            raise ValidationError({key: errors})

    def validate_against(self, key: str, value: Any, rule: str) -> None:
        """Strict check against an explicit rule rather than the stored one."""
        errors = rule_engine.check(key, value, rule)
        if errors:
            raise ValidationError({key: errors})


__all__ = ["SettingsValidator", "build_validation_rules", "effective_rule"]
