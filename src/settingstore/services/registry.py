"""Settings registry: the public read/write API over the settings table.

Reads go through the registry's :class:`~settingstore.cache.SettingsCache`;
every create, update and delete writes to the repository and then flushes the
cache before returning, so a read that follows a mutation always sees it.
"""

from __future__ import annotations

import copy
import re
from contextlib import AbstractContextManager
from dataclasses import replace
from typing import Any, Callable, Mapping, Optional

from sqlmodel import Session

from ..cache import RULES, SettingsCache, create_cache_backend
from ..codec import as_flag, encode
from ..config import BaseConfig
from ..domain.repositories import SettingsRepository
from ..domain.settings import SettingAttributes, SettingRecord
from ..exceptions import ConfigurationError, KeyNotFound
from ..infra.database import bootstrap_database
from ..infra.repositories import SQLModelSettingsRepository
from ..logging_config import get_logger
from ..models.setting import Setting
from ..setting_types import SettingType
from ..validation import SettingsValidator, build_validation_rules, effective_rule

logger = get_logger("registry")

SessionFactory = Callable[[], AbstractContextManager[Session]]

_DIGITS = re.compile(r"[0-9]+")

# Marks "no value passed" so attribute-only updates keep the stored value.
_UNSET: Any = object()


def coerce_input(value: Any, setting_type: SettingType) -> Any:
    """Turn command-line style text into the target type before validation.

    Booleans accept ``"true"``/``"false"`` and the 0/1 forms; integers accept
    all-digit text. Anything else is left for the validator to judge.
    """

    if setting_type is SettingType.BOOLEAN:
        if value in ("true", "false"):
            return value == "true"
        return as_flag(value)
    if isinstance(value, str):
        if setting_type is SettingType.INTEGER and _DIGITS.fullmatch(value):
            return int(value)
    return value


def _row_payload(row: Setting) -> dict[str, Any]:
    return {
        "key": row.key,
        "value": row.value,
        "type": row.type,
        "scope": row.scope,
        "editable": row.editable,
        "rules": row.rules,
        "description": row.description,
    }


def _build_records(rows: Mapping[str, Mapping[str, Any]]) -> dict[str, SettingRecord]:
    return {key: SettingRecord.from_row(row) for key, row in rows.items()}


def _detached(record: SettingRecord) -> SettingRecord:
    """Copy of ``record`` whose value can be changed without touching the cache."""
    if isinstance(record.value, (list, dict)):
        return replace(record, value=copy.deepcopy(record.value))
    return record


class SettingsRegistry:
    """Typed access to stored settings.

    Not safe for concurrent mutation from several threads without external
    locking; the cache's own state is lock-protected.
    """

    def __init__(self, repository: SettingsRepository, cache: Optional[SettingsCache] = None):
        self.repository = repository
        self.cache = cache if cache is not None else SettingsCache()
        self.validator = SettingsValidator(self.get_validation_rules)

    @classmethod
    def from_config(
        cls,
        config: Optional[BaseConfig] = None,
        session_factory: Optional[SessionFactory] = None,
    ) -> "SettingsRegistry":
        """Wire a registry from configuration, creating the table if needed."""

        cfg = config or BaseConfig()
        if session_factory is None:
            _, session_factory = bootstrap_database(cfg)
        cache = SettingsCache(
            create_cache_backend(cfg.REDIS_URL),
            enabled=cfg.CACHE_ENABLED,
            prefix=cfg.CACHE_PREFIX,
            ttl_seconds=cfg.CACHE_TTL,
        )
        return cls(SQLModelSettingsRepository(session_factory), cache)

    # ------------------------------------------------------------------
    # Snapshots

    def _load_rows(self) -> dict[str, dict[str, Any]]:
        return {row.key: _row_payload(row) for row in self.repository.list_all()}

    def _snapshot(self) -> Mapping[str, SettingRecord]:
        """The shared cached records. Never hand these out unchanged."""
        return self.cache.snapshot(self._load_rows, _build_records)

    def all_settings(self) -> dict[str, SettingRecord]:
        """Every setting keyed by name (cached)."""
        return {key: _detached(record) for key, record in self._snapshot().items()}

    def get_validation_rules(self) -> dict[str, str]:
        """Key -> effective rule for every stored setting (cached)."""
        return self.cache.remember(
            RULES, lambda: build_validation_rules(self.repository.list_all())
        )

    def flush_cache(self) -> None:
        self.cache.flush()

    def _record(self, key: str) -> SettingRecord:
        record = self._snapshot().get(key)
        if record is None:
            raise KeyNotFound(key)
        return record

    # ------------------------------------------------------------------
    # Reads

    def has(self, key: str) -> bool:
        return key in self._snapshot()

    def has_value(self, key: str) -> bool:
        """True if the setting holds a value.

        ``False``, ``0`` and ``""`` count as values; ``None`` and empty
        arrays do not.
        """
        record = self._snapshot().get(key)
        if record is None or record.value is None:
            return False
        value = record.value
        return bool(value) or value is False or value == 0 or value == ""

    def get_value(self, key: str, default: Any = None) -> Any:
        """Typed value of ``key``, or ``default`` when it holds no value.

        Raises:
            KeyNotFound: if the key does not exist.
        """
        record = self._record(key)
        if self.has_value(key):
            return _detached(record).value
        return default

    def get_value_as_string(self, key: str, default: Any = None) -> Any:
        """String rendering of ``key``'s value, or ``default`` when it holds none.

        Raises:
            KeyNotFound: if the key does not exist.
        """
        record = self._record(key)
        if self.has_value(key):
            return record.as_string()
        return default

    def is_editable(self, key: str) -> bool:
        return self._record(key).editable

    def get_by_scope(self, scope: str) -> list[SettingRecord]:
        """Settings whose scope equals ``scope``, ordered by key."""
        return [
            _detached(record)
            for _, record in sorted(self._snapshot().items())
            if record.scope == scope
        ]

    def list_settings(self, scope: Optional[str] = None) -> list[SettingRecord]:
        """Read settings straight from the store, bypassing the cache."""
        if scope:
            rows = self.repository.list_by_scope(scope)
        else:
            rows = self.repository.list_all()
        return [SettingRecord.from_row(_row_payload(row)) for row in rows]

    def validate_new_value(self, key: str, value: Any) -> bool:
        """Probe whether ``value`` would be accepted for ``key``."""
        self._record(key)
        return self.validator.passes(key, value)

    # ------------------------------------------------------------------
    # Mutations

    def set_value(self, key: str, value: Any = None, validate: bool = True) -> bool:
        """Store a new value for an existing key.

        Raises:
            KeyNotFound: if the key does not exist.
            ValidationError: if ``validate`` is set and the value is rejected.
        """
        setting = self.repository.get(key)
        if setting is None:
            raise KeyNotFound(key)

        kind = SettingType.parse(setting.type)
        value = coerce_input(value, kind)
        if validate:
            self.validator.validate(key, value)

        setting.value = encode(value, kind)
        self.repository.update(setting)
        self.cache.flush()
        logger.info("Setting updated", extra={"setting_key": key, "setting_type": kind.value})
        return True

    def create(self, key: str, value: Any = None, *, validate: bool = True, **attributes: Any) -> SettingRecord:
        """Insert a new setting.

        A ``None`` value creates a declared-but-unset entry and skips
        validation.

        Raises:
            ConfigurationError: on an unknown type or if the key already exists.
            ValidationError: if ``validate`` is set and the value is rejected.
        """
        attrs = SettingAttributes().merged(attributes)
        if self.repository.get(key) is not None:
            raise ConfigurationError(f"Setting {key!r} already exists", details={"key": key})

        value = coerce_input(value, attrs.type)
        if validate and value is not None:
            self.validator.validate_against(key, value, effective_rule(attrs.rules, attrs.type))

        row = Setting(
            key=key,
            value=encode(value, attrs.type),
            type=attrs.type.value,
            scope=attrs.scope,
            editable=attrs.editable,
            rules=attrs.rules,
            description=attrs.description,
        )
        row = self.repository.create(row)
        self.cache.flush()
        logger.info("Setting created", extra={"setting_key": key, "setting_type": attrs.type.value})
        return SettingRecord.from_row(_row_payload(row))

    def set(self, key: str, value: Any = _UNSET, *, validate: bool = True, **attributes: Any) -> SettingRecord:
        """Create ``key`` if absent, otherwise update its value and attributes.

        Leaving ``value`` out of an update keeps the stored value.

        Raises:
            ConfigurationError: if ``type`` differs from the stored type.
            ValidationError: if ``validate`` is set and the value is rejected.
        """
        existing = self.repository.get(key)
        if existing is None:
            return self.create(key, None if value is _UNSET else value, validate=validate, **attributes)

        stored_type = SettingType.parse(existing.type)
        if "type" in attributes and SettingType.parse(attributes["type"]) is not stored_type:
            raise ConfigurationError(
                f"Cannot change type of setting {key!r} from {stored_type.value} "
                f"to {attributes['type']}",
                details={"key": key, "type": stored_type.value},
            )

        attrs = SettingAttributes(
            type=stored_type,
            scope=existing.scope,
            editable=True if existing.editable is None else existing.editable,
            rules=existing.rules,
            description=existing.description,
        ).merged(attributes)

        if value is not _UNSET:
            value = coerce_input(value, stored_type)
            if validate and value is not None:
                self.validator.validate_against(key, value, effective_rule(attrs.rules, stored_type))
            existing.value = encode(value, stored_type)

        existing.scope = attrs.scope
        existing.editable = attrs.editable
        existing.rules = attrs.rules
        existing.description = attrs.description
        row = self.repository.update(existing)
        self.cache.flush()
        logger.info("Setting updated", extra={"setting_key": key, "setting_type": stored_type.value})
        return SettingRecord.from_row(_row_payload(row))

    def remove(self, key: str) -> bool:
        """Delete ``key``.

        Raises:
            KeyNotFound: if the key does not exist.
        """
        if not self.repository.delete(key):
            raise KeyNotFound(key)
        self.cache.flush()
        logger.info("Setting removed", extra={"setting_key": key})
        return True


__all__ = ["SettingsRegistry", "coerce_input"]
