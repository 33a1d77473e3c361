"""SQLModel implementation of the ledger record store."""

from __future__ import annotations

from typing import Iterable, Optional

from sqlmodel import Session, select

from ...models.expense import Expense
from ._scope import SessionFactory, use_session


class SQLModelExpenseRepository:
    """Reads and writes the full list of splits as one record."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def list_all(self, *, session: Optional[Session] = None) -> list[Expense]:
        """Return every stored split in saved ledger order."""
        with use_session(self.session_factory, session) as active:
            rows = active.exec(select(Expense).order_by(Expense.position)).all()  # type: ignore[arg-type]
            # Detached copies so callers never mutate session state.
            return [row.copy_with() for row in rows]

    def replace_all(self, expenses: Iterable[Expense], *, session: Optional[Session] = None) -> int:
        """Overwrite the stored ledger with ``expenses`` (order preserved)."""
        with use_session(self.session_factory, session) as active:
            for existing in active.exec(select(Expense)).all():
                active.delete(existing)
            active.flush()
            count = 0
            for position, expense in enumerate(expenses):
                active.add(expense.copy_with(position=position))
                count += 1
            active.flush()
            return count

    def count(self, *, session: Optional[Session] = None) -> int:
        """Count stored splits."""
        with use_session(self.session_factory, session) as active:
            return len(active.exec(select(Expense.id)).all())
