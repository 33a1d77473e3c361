"""Expense (split) repository protocol."""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from ...models.expense import Expense


class ExpenseRepository(Protocol):
    """Persistence for the ledger record: the full ordered list of splits."""

    def list_all(self, *, session: Any = None) -> list[Expense]:
        """Return every stored split in saved order."""
        ...

    def replace_all(self, expenses: Iterable[Expense], *, session: Any = None) -> int:
        """Overwrite the stored ledger."""
        ...
