"""Database engine and session helpers for the settings table."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Tuple

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from ..config import BaseConfig
from ..logging_config import get_logger
from ..models.setting import Setting

logger = get_logger("database")


def create_db_engine(config: BaseConfig) -> Engine:
    """Create the SQLModel engine for ``config.DATABASE_URL``."""
    return create_engine(config.DATABASE_URL, **config.sqlalchemy_engine_options())


def init_database(engine: Engine) -> None:
    """Create the settings table and its scope/type indexes if missing.

    This is the only schema management the store does.
    """
    SQLModel.metadata.create_all(engine, tables=[Setting.__table__])
    logger.debug("Settings table ready", extra={"table": Setting.__tablename__})


def create_session_factory(engine: Engine):
    """Return a callable producing transactional session scopes."""

    @contextmanager
    def factory() -> Iterator[Session]:
        session = Session(engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory


def bootstrap_database(config: BaseConfig | None = None) -> Tuple[Engine, object]:
    """Engine + session factory with the schema in place.

    Returns (engine, session_factory).
    """

    cfg = config or BaseConfig()
    engine = create_db_engine(cfg)
    init_database(engine)
    return engine, create_session_factory(engine)
