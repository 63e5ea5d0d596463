"""Settings repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.setting import Setting


class SettingsRepository(Protocol):
    """Primary-key access to stored settings."""

    def get(self, key: str) -> Optional[Setting]:
        """Retrieve a setting by key."""
        ...

    def list_all(self) -> list[Setting]:
        """List every setting ordered by key."""
        ...

    def list_by_scope(self, scope: str) -> list[Setting]:
        """List settings with the given scope, ordered by key."""
        ...

    def create(self, setting: Setting) -> Setting:
        """Insert a new setting."""
        ...

    def update(self, setting: Setting) -> Setting:
        """Persist changes to an existing setting."""
        ...

    def delete(self, key: str) -> bool:
        """Delete a setting by key. Returns False if it did not exist."""
        ...
