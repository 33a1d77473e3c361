"""Derived transaction view over grouped splits."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .expense import Expense


@dataclass(slots=True)
class Transaction:
    """All splits sharing one ``transaction_id``; never stored on its own."""

    transaction_id: str
    splits: list[Expense] = field(default_factory=list)

    @property
    def vendor(self) -> str:
        return self.splits[0].vendor if self.splits else ""

    @property
    def date(self) -> str:
        return self.splits[0].date if self.splits else ""

    @property
    def notes(self) -> Optional[str]:
        return self.splits[0].notes if self.splits else None

    @property
    def total(self) -> float:
        return sum(s.amount for s in self.splits)

    @property
    def is_split(self) -> bool:
        return len(self.splits) > 1

    @property
    def categories(self) -> list[str]:
        return [s.category for s in self.splits]
