"""Pytest configuration and shared fixtures for SpendSplit tests.

This module provides database fixtures, test data factories, and helper utilities
for testing domain logic, repositories, and services without touching the real app database.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Optional

import pytest
from sqlmodel import SQLModel, create_engine

# Import all models to ensure they're registered with SQLModel metadata
from spendsplit.models import AppSetting, CategoryDefinition, Expense  # noqa: F401
from spendsplit.config import TestConfig
from spendsplit.context import create_app_context
from spendsplit.infra.database import create_session_factory

# =============================================================================
# Database Fixtures
# =============================================================================


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
    """Factory returning transactional session scopes, as the repositories expect."""

    return create_session_factory(db_engine)


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point the application at a temporary data directory and database file."""

    monkeypatch.setenv("SPENDSPLIT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("SPENDSPLIT_DATABASE_URL", f"sqlite:///{tmp_path / 'spendsplit.db'}")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return tmp_path


@pytest.fixture
def app_context(data_dir):
    """Fresh application context backed by a file database in ``data_dir``."""

    return create_app_context()


@pytest.fixture
def memory_context(monkeypatch, tmp_path):
    """Application context on the in-memory test configuration."""

    monkeypatch.setenv("SPENDSPLIT_DATA_DIR", str(tmp_path))
    return create_app_context(TestConfig())


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def expense_factory():
    """Factory for detached split records.

    Returns:
        Callable: Function that creates Expense instances
    """

    counter = {"n": 0}

    def _create_expense(
        amount: float = 10.0,
        category: str = "Food",
        date: str = "2024-01-15",
        transaction_id: Optional[str] = None,
        vendor: str = "Test Vendor",
        notes: Optional[str] = None,
        id: Optional[str] = None,
    ) -> Expense:
        counter["n"] += 1
        tid = transaction_id if transaction_id is not None else str(1_700_000_000_000 + counter["n"])
        return Expense(
            id=id or f"{tid}-split{counter['n']}",
            transaction_id=tid,
            amount=amount,
            vendor=vendor,
            category=category,
            date=date,
            notes=notes,
        )

    return _create_expense


# =============================================================================
# External service stub
# =============================================================================


class StubResponses:
    """Mimics ``client.responses`` of the OpenAI SDK."""

    def __init__(self, output_text: Any = None, error: Optional[Exception] = None):
        self.output_text = output_text
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def create(self, **kwargs: Any):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(output_text=self.output_text)


class StubOpenAI:
    def __init__(self, output_text: Any = None, error: Optional[Exception] = None):
        self.responses = StubResponses(output_text, error)


@pytest.fixture
def stub_client():
    """Build a stub OpenAI client returning ``output_text`` (or raising ``error``)."""

    def _make(output_text: Any = None, error: Optional[Exception] = None) -> StubOpenAI:
        return StubOpenAI(output_text, error)

    return _make


# =============================================================================
# Helper Functions
# =============================================================================


def assert_float_equal(actual: float, expected: float, tolerance: float = 0.01):
    """Assert that two floats are equal within a tolerance.

    Args:
        actual: Actual value
        expected: Expected value
        tolerance: Maximum allowed difference (default 0.01)

    Raises:
        AssertionError: If values differ by more than tolerance
    """
    assert (
        abs(actual - expected) < tolerance
    ), f"Expected {expected}, got {actual} (diff: {abs(actual - expected)})"
