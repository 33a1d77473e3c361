"""Settings repository protocol."""

from __future__ import annotations

from typing import Any, Protocol


class SettingsRepository(Protocol):
    """Key/value persistence holding JSON values (currency selection, legacy data)."""

    def get_json(self, key: str, *, session: Any = None) -> Any:
        ...

    def set_json(self, key: str, value: Any, *, session: Any = None) -> Any:
        ...

    def delete(self, key: str, *, session: Any = None) -> None:
        ...
