"""Settings table."""

from __future__ import annotations

from typing import ClassVar, Optional

from sqlalchemy import Index, Text
from sqlmodel import Field, SQLModel

from ..config import settings_table_name

TABLE_NAME = settings_table_name()


class Setting(SQLModel, table=True):
    """One named, typed configuration entry.

    ``value`` holds the encoded text (see :mod:`settingstore.codec`); ``type``
    never changes once the row exists.
    """

    __tablename__: ClassVar[str] = TABLE_NAME
    __table_args__ = (Index(f"ix_{TABLE_NAME}_scope_type", "scope", "type"),)

    key: str = Field(primary_key=True, max_length=255)
    value: Optional[str] = Field(default=None, sa_type=Text)
    type: str = Field(index=True, max_length=32)
    scope: Optional[str] = Field(default=None, index=True, max_length=255)
    editable: Optional[bool] = Field(default=True, nullable=True)
    rules: Optional[str] = Field(default=None, sa_type=Text)
    description: Optional[str] = Field(default=None, sa_type=Text)
