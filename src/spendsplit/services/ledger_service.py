"""Expense ledger: the ordered collection of splits plus list-view helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Iterator, Optional

from ..constants.categories import ALL_CATEGORIES_FILTER
from ..models.expense import Expense
from ..models.transaction import Transaction

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_LEADING_DIGITS = re.compile(r"^\s*(\d+)")


def numeric_transaction_id(transaction_id: str) -> int:
    """Interpret a transaction id as a number for ordering.

    Only the leading digits count (``"1700000000000-x"`` -> 1700000000000);
    ids without leading digits sort after every numeric id (-1).
    """

    match = _LEADING_DIGITS.match(transaction_id or "")
    return int(match.group(1)) if match else -1


def ledger_sort_key(expense: Expense) -> tuple[str, int]:
    return (expense.date, numeric_transaction_id(expense.transaction_id))


def sort_expenses(expenses: Iterable[Expense]) -> list[Expense]:
    """Date descending, then transaction id descending.

    The sort is stable so splits of one transaction keep their relative order.
    """

    return sorted(expenses, key=ledger_sort_key, reverse=True)


@dataclass
class LedgerFilters:
    """Filters applied to ledger listings."""

    month: Optional[str] = None  # YYYY-MM
    category: str = ALL_CATEGORIES_FILTER
    text: Optional[str] = None

    def matches(self, expense: Expense) -> bool:
        if self.month and not expense.date.startswith(self.month):
            return False
        if self.category and self.category != ALL_CATEGORIES_FILTER and expense.category != self.category:
            return False
        if self.text:
            needle = self.text.lower()
            haystack = f"{expense.vendor} {expense.notes or ''}".lower()
            if needle not in haystack:
                return False
        return True


@dataclass
class Pagination:
    """Simple pagination parameters."""

    page: int = 1
    per_page: int = 25


class ExpenseLedger:
    """Ordered split collection with transaction-level mutations.

    Iteration order is always :func:`sort_expenses` order. A transaction-id
    index is kept as a cache and rebuilt lazily after every mutation.
    """

    def __init__(self, expenses: Iterable[Expense] = ()):
        self._expenses: list[Expense] = sort_expenses(e.copy_with() for e in expenses)
        self._index: Optional[dict[str, list[int]]] = None

    def __len__(self) -> int:
        return len(self._expenses)

    def __iter__(self) -> Iterator[Expense]:
        return iter(list(self._expenses))

    def copy(self) -> "ExpenseLedger":
        return ExpenseLedger(self._expenses)

    def snapshot(self) -> list[Expense]:
        """Detached copies of every split in ledger order."""
        return [e.copy_with() for e in self._expenses]

    def _commit(self, expenses: list[Expense]) -> None:
        self._expenses = sort_expenses(expenses)
        self._index = None

    def _transaction_index(self) -> dict[str, list[int]]:
        if self._index is None:
            index: dict[str, list[int]] = {}
            for position, expense in enumerate(self._expenses):
                index.setdefault(expense.transaction_id, []).append(position)
            self._index = index
        return self._index

    # -- mutations -----------------------------------------------------

    def insert(self, splits: Iterable[Expense]) -> None:
        """Append splits, then re-sort the whole collection."""
        self._commit(self._expenses + [s.copy_with() for s in splits])

    def delete_transaction(self, transaction_id: str) -> int:
        """Remove every split of ``transaction_id``; returns how many were removed."""
        kept = [e for e in self._expenses if e.transaction_id != transaction_id]
        removed = len(self._expenses) - len(kept)
        if removed:
            self._commit(kept)
        return removed

    def replace_transaction(self, transaction_id: str, new_splits: Iterable[Expense]) -> int:
        """Swap all splits of ``transaction_id`` for ``new_splits`` in one step."""
        incoming = [s.copy_with() for s in new_splits]
        foreign = {s.transaction_id for s in incoming if s.transaction_id != transaction_id}
        if foreign:
            raise ValueError(
                f"Replacement splits must belong to transaction {transaction_id}, got {sorted(foreign)}"
            )
        kept = [e for e in self._expenses if e.transaction_id != transaction_id]
        removed = len(self._expenses) - len(kept)
        self._commit(kept + incoming)
        return removed

    def reassign_category(self, old_name: str, new_name: str) -> int:
        """Point every split in ``old_name`` (any case) at ``new_name``."""
        key = old_name.strip().lower()
        changed = 0
        for expense in self._expenses:
            if expense.category.lower() == key and expense.category != new_name:
                expense.category = new_name
                changed += 1
        return changed

    # -- queries -------------------------------------------------------

    def query(self, predicate: Callable[[Expense], bool]) -> list[Expense]:
        """Order-preserving filtered view (detached copies)."""
        return [e.copy_with() for e in self._expenses if predicate(e)]

    def get_transaction(self, transaction_id: str) -> list[Expense]:
        positions = self._transaction_index().get(transaction_id, [])
        return [self._expenses[p].copy_with() for p in positions]

    def has_transaction(self, transaction_id: str) -> bool:
        return transaction_id in self._transaction_index()

    def transactions(self, filters: Optional[LedgerFilters] = None) -> list[Transaction]:
        """Group splits by transaction id, in ledger order of first appearance."""
        grouped: dict[str, Transaction] = {}
        for expense in self._expenses:
            if filters is not None and not filters.matches(expense):
                continue
            txn = grouped.setdefault(expense.transaction_id, Transaction(expense.transaction_id))
            txn.splits.append(expense.copy_with())
        return list(grouped.values())

    def filter_expenses(
        self, month: Optional[str] = None, category: str = ALL_CATEGORIES_FILTER
    ) -> list[Expense]:
        """Splits in ``month`` (``YYYY-MM``), optionally limited to one category."""
        filters = LedgerFilters(month=month, category=category)
        return self.query(filters.matches)

    def transactions_by_date(
        self,
        month: Optional[str] = None,
        category: str = ALL_CATEGORIES_FILTER,
        text: Optional[str] = None,
    ) -> dict[str, list[Transaction]]:
        """Transactions grouped under their date, newest date first."""
        return group_by_date(self.transactions(LedgerFilters(month=month, category=category, text=text)))

    def available_months(self, today: Optional[date] = None) -> list[str]:
        """Distinct ``YYYY-MM`` values, newest first, always including the current month."""
        months = {e.date[:7] for e in self._expenses if len(e.date) >= 7}
        months.add((today or date.today()).strftime("%Y-%m"))
        return sorted(months, reverse=True)

    def max_numeric_transaction_id(self) -> int:
        return max((numeric_transaction_id(e.transaction_id) for e in self._expenses), default=0)

    def missing_transaction_ids(self) -> bool:
        return any(not e.transaction_id for e in self._expenses)


def group_by_date(txs: Iterable[Transaction]) -> dict[str, list[Transaction]]:
    by_date: dict[str, list[Transaction]] = {}
    for txn in txs:
        by_date.setdefault(txn.date, []).append(txn)
    return by_date


def paginate_transactions(
    txs: list[Transaction], pagination: Pagination
) -> tuple[list[Transaction], int]:
    """Return the current page of transactions and total count."""

    total = len(txs)
    page = max(1, pagination.page)
    per_page = max(1, pagination.per_page)
    start = (page - 1) * per_page
    end = start + per_page
    return txs[start:end], total


def format_display_date(iso_date: str) -> str:
    """``"2024-01-05"`` -> ``"January 5, 2024"``; anything else -> ``"Invalid Date"``."""

    if not iso_date or not _ISO_DATE.match(iso_date):
        return "Invalid Date"
    year, month, day = iso_date.split("-")
    month_index = int(month) - 1
    day_number = int(day)
    if month_index < 0 or month_index > 11 or day_number < 1 or day_number > 31:
        return "Invalid Date"
    return f"{MONTH_NAMES[month_index]} {day_number}, {year}"


def month_label(month: str) -> str:
    """``"2024-01"`` -> ``"January 2024"``."""

    year, number = month.split("-")[:2]
    return f"{MONTH_NAMES[int(number) - 1]} {year}"
