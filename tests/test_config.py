"""Tests for configuration and the built-in currency list."""

from __future__ import annotations

import pytest
from sqlalchemy.pool import StaticPool

from spendsplit.config import BaseConfig, TestConfig
from spendsplit.constants.currencies import CURRENCIES, DEFAULT_CURRENCY, find_currency, search_currencies


def test_base_config_reads_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("SPENDSPLIT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("SPENDSPLIT_DEV_MODE", "off")
    monkeypatch.setenv("SPENDSPLIT_AI_MODEL", "gpt-test")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.delenv("SPENDSPLIT_DATABASE_URL", raising=False)
    monkeypatch.delenv("SPENDSPLIT_BACKUP_DIR", raising=False)

    config = BaseConfig()

    assert config.DATA_DIR == tmp_path.resolve()
    assert config.DEV_MODE is False
    assert config.DATABASE_URL == f"sqlite:///{tmp_path.resolve() / 'spendsplit.db'}"
    assert config.BACKUP_DIR == tmp_path.resolve() / "backups"
    assert config.AI_MODEL == "gpt-test"
    assert config.ai_enabled


@pytest.mark.parametrize("value, expected", [("1", True), ("yes", True), ("On", True), ("0", False), ("no", False)])
def test_dev_mode_flag_parsing(tmp_path, monkeypatch, value, expected):
    monkeypatch.setenv("SPENDSPLIT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("SPENDSPLIT_DEV_MODE", value)
    assert BaseConfig().DEV_MODE is expected


def test_test_config_uses_in_memory_database(tmp_path, monkeypatch):
    monkeypatch.setenv("SPENDSPLIT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    config = TestConfig()

    assert config.DATABASE_URL == "sqlite://"
    assert not config.ai_enabled
    options = config.sqlalchemy_engine_options()
    assert options["poolclass"] is StaticPool
    assert options["connect_args"] == {"check_same_thread": False}


def test_file_database_does_not_use_static_pool(tmp_path, monkeypatch):
    monkeypatch.setenv("SPENDSPLIT_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("SPENDSPLIT_DATABASE_URL", raising=False)
    assert "poolclass" not in BaseConfig().sqlalchemy_engine_options()


def test_search_currencies():
    assert search_currencies("") == CURRENCIES
    assert [c.code for c in search_currencies("rupee")] == ["INR", "PKR"]
    assert [c.code for c in search_currencies("usd")] == ["USD"]
    assert search_currencies("zzz") == []


def test_find_currency():
    assert find_currency(" inr ") == DEFAULT_CURRENCY
    assert find_currency("XXX") is None
