"""Settings store configuration objects and helpers."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    """Read an optional integer; blank or unset means None."""

    value = os.getenv(name)
    if value is None or not value.strip() or value.strip().lower() == "null":
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from exc


def settings_table_name() -> str:
    """Return the table name used by the Setting model."""

    return os.getenv("SETTINGS_TABLE", "settings") or "settings"


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "settingstore"
    DB_FILENAME = "settings.db"

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("SETTINGS_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("SETTINGS_DATABASE_URL", self._build_sqlite_url())
        self.TABLE = settings_table_name()
        self.CACHE_ENABLED = _env_bool("SETTINGS_CACHE_ENABLED", default=True)
        self.CACHE_PREFIX = os.getenv("SETTINGS_CACHE_PREFIX", "settings")
        self.CACHE_TTL = _env_int("SETTINGS_CACHE_TTL")
        self.REDIS_URL = os.getenv("SETTINGS_REDIS_URL") or None
        # Reserved: parsed and exposed, never seeded into the store.
        self.DEFAULTS = self._load_defaults()

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("SETTINGS_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    def _load_defaults(self) -> dict[str, dict[str, Any]]:
        raw = os.getenv("SETTINGS_DEFAULTS", "").strip()
        if not raw:
            return {}
        try:
            defaults = json.loads(raw)
        except ValueError as exc:
            raise ConfigurationError("SETTINGS_DEFAULTS must be a JSON object") from exc
        if not isinstance(defaults, dict):
            raise ConfigurationError("SETTINGS_DEFAULTS must be a JSON object")
        return defaults

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        engine_options: dict[str, Any] = {}
        if self.DATABASE_URL.startswith("sqlite"):
            engine_options["connect_args"] = {"check_same_thread": False}
        return engine_options
