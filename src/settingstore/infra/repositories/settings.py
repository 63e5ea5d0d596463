"""SQLModel implementation of the settings repository."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Callable, Optional

from sqlmodel import Session, select

from ...models.setting import Setting


class SQLModelSettingsRepository:
    """SQLModel-based settings repository."""

    def __init__(self, session_factory: Callable[[], AbstractContextManager[Session]]):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[Setting]:
        with self.session_factory() as session:
            obj = session.get(Setting, key)
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self) -> list[Setting]:
        with self.session_factory() as session:
            rows = list(session.exec(select(Setting).order_by(Setting.key)).all())
            session.expunge_all()
            return rows

    def list_by_scope(self, scope: str) -> list[Setting]:
        with self.session_factory() as session:
            statement = select(Setting).where(Setting.scope == scope).order_by(Setting.key)
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, setting: Setting) -> Setting:
        with self.session_factory() as session:
            session.add(setting)
            session.commit()
            session.refresh(setting)
            session.expunge(setting)
            return setting

    def update(self, setting: Setting) -> Setting:
        with self.session_factory() as session:
            merged = session.merge(setting)
            session.commit()
            session.refresh(merged)
            session.expunge(merged)
            return merged

    def delete(self, key: str) -> bool:
        with self.session_factory() as session:
            setting = session.get(Setting, key)
            if setting is None:
                return False
            session.delete(setting)
            session.commit()
            return True


__all__ = ["SQLModelSettingsRepository"]
