"""Settings repository for app-level key/value pairs."""

from __future__ import annotations

import json
from typing import Any, Optional

from sqlmodel import Session, select

from ...models.settings import AppSetting
from ._scope import SessionFactory, use_session


class SQLModelSettingsRepository:
    """SQLModel-based settings repository storing JSON values."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def get(self, key: str, *, session: Optional[Session] = None) -> Optional[AppSetting]:
        with use_session(self.session_factory, session) as active:
            setting = active.exec(select(AppSetting).where(AppSetting.key == key)).first()
            if setting is None:
                return None
            return AppSetting(key=setting.key, value=setting.value, description=setting.description)

    def get_json(self, key: str, *, session: Optional[Session] = None) -> Any:
        """Return the decoded JSON value for ``key`` or ``None`` when unset."""
        setting = self.get(key, session=session)
        if setting is None:
            return None
        return json.loads(setting.value)

    def set(
        self,
        key: str,
        value: str,
        description: str | None = None,
        *,
        session: Optional[Session] = None,
    ) -> AppSetting:
        with use_session(self.session_factory, session) as active:
            setting = active.exec(select(AppSetting).where(AppSetting.key == key)).first()
            if setting:
                setting.value = value
                setting.description = description
            else:
                setting = AppSetting(key=key, value=value, description=description)
            active.add(setting)
            active.flush()
            return AppSetting(key=key, value=value, description=description)

    def set_json(self, key: str, value: Any, *, session: Optional[Session] = None) -> AppSetting:
        return self.set(key, json.dumps(value, ensure_ascii=False), session=session)

    def delete(self, key: str, *, session: Optional[Session] = None) -> None:
        with use_session(self.session_factory, session) as active:
            setting = active.exec(select(AppSetting).where(AppSetting.key == key)).first()
            if setting:
                active.delete(setting)
                active.flush()


__all__ = ["SQLModelSettingsRepository"]
