"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from sqlalchemy.pool import StaticPool

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "SpendSplit"
    DB_FILENAME = "spendsplit.db"
    BACKUP_DIRNAME = "backups"
    REPORT_DIRNAME = "reports"
    DEFAULT_AI_MODEL = "gpt-5"

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("SPENDSPLIT_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("SPENDSPLIT_DATABASE_URL", self._build_sqlite_url())
        self.BACKUP_DIR = Path(
            os.getenv("SPENDSPLIT_BACKUP_DIR", str(self.DATA_DIR / self.BACKUP_DIRNAME))
        ).expanduser()
        self.REPORT_DIR = self.DATA_DIR / self.REPORT_DIRNAME
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
        self.AI_MODEL = os.getenv("SPENDSPLIT_AI_MODEL", self.DEFAULT_AI_MODEL)

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file, logs and backups live."""

        data_root = os.getenv("SPENDSPLIT_DATA_DIR", "instance")
        base_path = Path(data_root).expanduser()
        try:
            path = base_path.resolve()
            path.mkdir(parents=True, exist_ok=True)
            return path
        except PermissionError:
            # Protected locations fall back to a per-user directory.
            fallback_path = Path.home() / f".{self.APP_NAME.lower()}"
            fallback_path.mkdir(parents=True, exist_ok=True)
            return fallback_path.resolve()

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    @property
    def ai_enabled(self) -> bool:
        """True when the external text services have a credential."""

        return bool(self.OPENAI_API_KEY)

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        connect_args: dict[str, Any] = {"check_same_thread": False}
        engine_options: dict[str, Any] = {"connect_args": connect_args}
        if self.DATABASE_URL in {"sqlite://", "sqlite:///:memory:"}:
            # A single shared connection keeps the in-memory database alive.
            engine_options["poolclass"] = StaticPool
        return engine_options


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestConfig(BaseConfig):
    """Configuration used by the test-suite: in-memory database, no AI key."""

    # Keep pytest from collecting this as a test class.
    __test__ = False
    DEBUG = False
    TESTING = True

    def __init__(self) -> None:
        super().__init__()
        self.DATABASE_URL = "sqlite://"
        self.OPENAI_API_KEY = None
