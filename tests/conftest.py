"""Pytest configuration and shared fixtures for settingstore tests.

Every test gets its own temporary SQLite database so nothing touches a real
settings store.
"""

from __future__ import annotations

import tempfile
from contextlib import contextmanager
from pathlib import Path

import pytest
from sqlmodel import Session, SQLModel, create_engine

from settingstore import helpers
from settingstore.cache import InMemoryCacheBackend, SettingsCache
from settingstore.infra.repositories import SQLModelSettingsRepository
from settingstore.models import Setting  # noqa: F401  # registers the table
from settingstore.services.registry import SettingsRegistry


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Return a factory producing transactional session context managers."""

    @contextmanager
    def factory():
        session = Session(db_engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory


@pytest.fixture
def repository(session_factory):
    return SQLModelSettingsRepository(session_factory)


@pytest.fixture
def cache_backend():
    return InMemoryCacheBackend()


@pytest.fixture
def registry(repository, cache_backend):
    """Registry with caching enabled (in-memory backend, no TTL)."""
    return SettingsRegistry(repository, SettingsCache(cache_backend, prefix="settings"))


@pytest.fixture
def uncached_registry(repository):
    return SettingsRegistry(repository, SettingsCache(enabled=False))


@pytest.fixture
def bound_registry(registry):
    """Bind ``registry`` for the module-level accessors, unbinding afterwards."""
    helpers.bind_registry(registry)
    yield registry
    helpers.bind_registry(None)
