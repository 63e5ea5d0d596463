"""Pipe-delimited validation rules.

A rule string such as ``"nullable|integer|min:1|max:10"`` is split into
individual constraints, each optionally carrying comma-separated arguments
after a colon. A ``regex:`` pattern wrapped in delimiters (``/.../``, ``#...#`` or
``~...~``) runs to its closing delimiter, so it may contain ``|`` and ``,``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .exceptions import ConfigurationError

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_INTEGER_TEXT = re.compile(r"^[+-]?\d+$")
_NUMERIC_TEXT = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

_RULE_ALIASES = {
    "str": "string",
    "int": "integer",
    "bool": "boolean",
    "arr": "array",
}


@dataclass(frozen=True)
class Constraint:
    """A single parsed rule, e.g. ``min:3``."""

    name: str
    args: tuple[str, ...] = ()

    def describe(self) -> str:
        return f"{self.name}:{','.join(self.args)}" if self.args else self.name


@dataclass
class RuleSet:
    """Parsed constraints for one field."""

    constraints: list[Constraint] = field(default_factory=list)

    @property
    def nullable(self) -> bool:
        return any(c.name == "nullable" for c in self.constraints)

    def has(self, name: str) -> bool:
        return any(c.name == name for c in self.constraints)


def _split_regex(text: str) -> tuple[str, str]:
    """Split ``text`` into a regex pattern and the rules that follow it."""
    if text and text[0] in "/#~":
        delimiter = text[0]
        for index in range(1, len(text)):
            if text[index] == delimiter and (index + 1 == len(text) or text[index + 1] == "|"):
                return text[: index + 1], text[index + 2 :]
    pattern, _, rest = text.partition("|")
    return pattern, rest


def parse_rules(rule_text: Optional[str]) -> RuleSet:
    """Split a rule string into constraints.

    Raises:
        ConfigurationError: on an unknown rule name.
    """

    ruleset = RuleSet()
    remaining = (rule_text or "").strip()
    while remaining:
        remaining = remaining.lstrip()
        if remaining.startswith("regex:"):
            pattern, remaining = _split_regex(remaining[len("regex:"):])
            ruleset.constraints.append(Constraint("regex", (pattern,)))
            continue
        part, _, remaining = remaining.partition("|")
        part = part.strip()
        if not part:
            continue
        name, _, raw_args = part.partition(":")
        name = name.strip().lower()
        name = _RULE_ALIASES.get(name, name)
        if name not in _CHECKS:
            raise ConfigurationError(f"Unknown validation rule: {name!r}", details={"rule": part})
        args = tuple(arg.strip() for arg in raw_args.split(",")) if raw_args else ()
        ruleset.constraints.append(Constraint(name, args))
    return ruleset


def summarize(value: Any, limit: int = 40) -> str:
    """Short human rendering of a value for error messages."""

    if isinstance(value, (list, tuple)):
        return f"list of {len(value)} item{'s' if len(value) != 1 else ''}"
    if isinstance(value, dict):
        return f"dict of {len(value)} item{'s' if len(value) != 1 else ''}"
    text = repr(value)
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and bool(_INTEGER_TEXT.match(value))


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and bool(_NUMERIC_TEXT.match(value.strip()))


def _size(value: Any, ruleset: RuleSet) -> Optional[float]:
    """Numeric size used by min/max/between: magnitude, length or count."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        if (ruleset.has("integer") or ruleset.has("numeric")) and _is_numeric(value):
            return float(value)
        return len(value)
    if isinstance(value, (list, tuple, dict)):
        return len(value)
    return None


def _number(arg: str, constraint: Constraint) -> float:
    try:
        return float(arg)
    except ValueError:
        raise ConfigurationError(
            f"Rule {constraint.describe()!r} needs a numeric argument"
        ) from None


def _check_required(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    if value is None or value == "" or (isinstance(value, (list, tuple, dict)) and not value):
        return "is required"
    return None


def _check_nullable(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    return None


def _check_string(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    return None if isinstance(value, str) else "must be a string"


def _check_integer(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    return None if _is_integer(value) else "must be an integer"


def _check_numeric(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    return None if _is_numeric(value) else "must be a number"


def _check_boolean(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    if isinstance(value, bool) or value in (0, 1, "0", "1"):
        return None
    return "must be true or false"


def _check_array(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    return None if isinstance(value, (list, tuple, dict)) else "must be an array"


def _check_min(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    bound = _number(constraint.args[0] if constraint.args else "", constraint)
    size = _size(value, ruleset)
    if size is None or size < bound:
        return f"must be at least {constraint.args[0]}"
    return None


def _check_max(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    bound = _number(constraint.args[0] if constraint.args else "", constraint)
    size = _size(value, ruleset)
    if size is None or size > bound:
        return f"may not be greater than {constraint.args[0]}"
    return None


def _check_between(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    if len(constraint.args) != 2:
        raise ConfigurationError(f"Rule {constraint.describe()!r} needs two arguments")
    low, high = (_number(arg, constraint) for arg in constraint.args)
    size = _size(value, ruleset)
    if size is None or not low <= size <= high:
        return f"must be between {constraint.args[0]} and {constraint.args[1]}"
    return None


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def _check_in(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    if _as_text(value) in constraint.args:
        return None
    return f"must be one of: {', '.join(constraint.args)}"


def _check_not_in(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    if _as_text(value) in constraint.args:
        return f"may not be one of: {', '.join(constraint.args)}"
    return None


def _check_regex(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    pattern = constraint.args[0] if constraint.args else ""
    # Accept delimited patterns like "/^a+$/" as well as bare ones.
    if len(pattern) >= 2 and pattern[0] == pattern[-1] and pattern[0] in "/#~":
        pattern = pattern[1:-1]
    try:
        compiled = re.compile(pattern)
    except re.error as exc:
        raise ConfigurationError(f"Invalid regex rule {pattern!r}: {exc}") from exc
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        return "format is invalid"
    return None if compiled.search(str(value)) else "format is invalid"


def _check_email(value: Any, constraint: Constraint, ruleset: RuleSet) -> Optional[str]:
    if isinstance(value, str) and _EMAIL.match(value):
        return None
    return "must be a valid email address"


_CHECKS: dict[str, Callable[[Any, Constraint, RuleSet], Optional[str]]] = {
    "required": _check_required,
    "nullable": _check_nullable,
    "string": _check_string,
    "integer": _check_integer,
    "numeric": _check_numeric,
    "boolean": _check_boolean,
    "array": _check_array,
    "min": _check_min,
    "max": _check_max,
    "between": _check_between,
    "in": _check_in,
    "not_in": _check_not_in,
    "regex": _check_regex,
    "email": _check_email,
}


def check(field_name: str, value: Any, rule_text: Optional[str]) -> list[str]:
    """Return one message per violated constraint (empty list when valid)."""

    ruleset = parse_rules(rule_text)
    if value is None and ruleset.nullable:
        return []

    messages: list[str] = []
    for constraint in ruleset.constraints:
        problem = _CHECKS[constraint.name](value, constraint, ruleset)
        if problem:
            messages.append(
                f"The {field_name} setting {problem} [{constraint.describe()}]; "
                f"got {summarize(value)} ({type(value).__name__})."
            )
    return messages


__all__ = ["Constraint", "RuleSet", "check", "parse_rules", "summarize"]
