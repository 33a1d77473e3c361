"""Transaction model: validation, id minting, commit paths and form helpers.

A transaction is entered as a declared total, a vendor, a date, optional
notes and one or more ``(amount, category)`` splits. It may only be committed
when the split amounts add up to the total (within :data:`AMOUNT_TOLERANCE`).
Commits go through :class:`~spendsplit.services.ledger_service.ExpenseLedger`;
edits replace the whole split set under the same ``transaction_id``.
"""

from __future__ import annotations

import math
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Sequence, Union

from ..constants.categories import OTHER_CATEGORY
from ..errors import ValidationError
from ..models.expense import Expense
from ..models.transaction import Transaction
from .ledger_service import ExpenseLedger

if TYPE_CHECKING:  # pragma: no cover
    from .assistant import ParsedExpense
    from .categories import CategoryRegistry

AMOUNT_TOLERANCE = 0.01

# Field order used when picking the message to raise.
_FIELD_PRIORITY = ("amount", "vendor", "date", "splits", "category")

DateLike = Union[str, date, datetime]


@dataclass(frozen=True, slots=True)
class SplitInput:
    """One category's share of a transaction as entered by the user."""

    amount: float
    category: str


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of :func:`validate`; ``remaining`` is reported even when invalid."""

    remaining: float
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        for name in _FIELD_PRIORITY:
            if name in self.errors:
                raise ValidationError(self.errors[name], field=name)


def parse_amount(raw: object) -> float:
    """Lenient numeric parse for form input: blanks and garbage count as 0."""

    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        try:
            value = float(str(raw).strip())
        except (TypeError, ValueError):
            return 0.0
    return value if math.isfinite(value) else 0.0


def validate(declared_total: float, vendor: str, splits: Sequence[SplitInput]) -> ValidationResult:
    """Check a transaction against the commit rules.

    Valid iff the total is positive, the vendor is non-blank, every split has a
    positive amount and a category, and ``|total - sum(amounts)| < 0.01``.
    """

    total = parse_amount(declared_total)
    allocated = sum(parse_amount(s.amount) for s in splits)
    remaining = total - allocated
    errors: dict[str, str] = {}

    if not total > 0:
        errors["amount"] = "Please enter a valid total amount."
    if not (vendor or "").strip():
        errors["vendor"] = "Please enter a vendor."
    if not splits:
        errors["splits"] = "Add at least one split."
    elif not all(parse_amount(s.amount) > 0 and (s.category or "").strip() for s in splits):
        errors["splits"] = "Each split needs a positive amount and a category."
    elif not abs(remaining) < AMOUNT_TOLERANCE:
        errors["splits"] = f"Split amounts must add up to the total ({remaining:.2f} remaining)."

    return ValidationResult(remaining=remaining, errors=errors)


def normalize_date(value: DateLike) -> str:
    """Return ``YYYY-MM-DD`` or raise :class:`ValidationError` on anything else."""

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = (value or "").strip()
    try:
        parsed = date.fromisoformat(text)
    except ValueError:
        parsed = None
    if parsed is None or len(text) != 10:
        raise ValidationError("Please enter a date as YYYY-MM-DD.", field="date")
    return parsed.isoformat()


class TransactionIdFactory:
    """Mint transaction ids that are unique and strictly increasing.

    Ids are millisecond timestamps rendered as strings; when the clock stalls
    or goes backwards the previous id plus one is used instead.
    """

    def __init__(self, floor: int = 0, clock: Optional[Callable[[], int]] = None):
        self._last = floor
        self._clock = clock or (lambda: time.time_ns() // 1_000_000)

    @property
    def last(self) -> int:
        return self._last

    def observe(self, value: int) -> None:
        """Raise the floor so future ids sort after ``value``."""
        self._last = max(self._last, value)

    def __call__(self) -> str:
        candidate = max(int(self._clock()), self._last + 1)
        self._last = candidate
        return str(candidate)


def new_split_id(transaction_id: str) -> str:
    return f"{transaction_id}-{uuid.uuid4().hex[:9]}"


def canonicalize_splits(splits: Iterable[SplitInput], registry: "CategoryRegistry") -> list[SplitInput]:
    """Resolve split categories against the registry (case-insensitive)."""

    resolved: list[SplitInput] = []
    for split in splits:
        name = registry.canonical_name(split.category) if (split.category or "").strip() else None
        if (split.category or "").strip() and name is None:
            raise ValidationError(f'Unknown category "{split.category}".', field="category")
        resolved.append(SplitInput(amount=split.amount, category=name or ""))
    return resolved


def build_splits(
    transaction_id: str,
    *,
    vendor: str,
    date: str,
    notes: Optional[str],
    splits: Sequence[SplitInput],
) -> list[Expense]:
    """One stored split per input split, each with a fresh id."""

    shared_notes = (notes or "").strip() or None
    return [
        Expense(
            id=new_split_id(transaction_id),
            transaction_id=transaction_id,
            amount=float(split.amount),
            vendor=vendor.strip(),
            category=split.category.strip(),
            date=date,
            notes=shared_notes,
        )
        for split in splits
    ]


def create_transaction(
    ledger: ExpenseLedger,
    *,
    total: float,
    vendor: str,
    date: DateLike,
    splits: Sequence[SplitInput],
    notes: Optional[str] = None,
    id_factory: Callable[[], str],
) -> Transaction:
    """Validate, mint a new transaction id and insert the splits."""

    validate(total, vendor, splits).raise_for_errors()
    day = normalize_date(date)
    transaction_id = id_factory()
    expenses = build_splits(transaction_id, vendor=vendor, date=day, notes=notes, splits=splits)
    ledger.insert(expenses)
    return Transaction(transaction_id=transaction_id, splits=expenses)


def update_transaction(
    ledger: ExpenseLedger,
    transaction_id: str,
    *,
    total: float,
    vendor: str,
    date: DateLike,
    splits: Sequence[SplitInput],
    notes: Optional[str] = None,
) -> Transaction:
    """Validate and replace every split of ``transaction_id`` with a fresh set."""

    if not ledger.has_transaction(transaction_id):
        raise ValidationError(f"Transaction {transaction_id} does not exist.", field="transaction_id")
    validate(total, vendor, splits).raise_for_errors()
    day = normalize_date(date)
    expenses = build_splits(transaction_id, vendor=vendor, date=day, notes=notes, splits=splits)
    ledger.replace_transaction(transaction_id, expenses)
    return Transaction(transaction_id=transaction_id, splits=expenses)


# ---------------------------------------------------------------------------
# Form drafts
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionDraft:
    """Editable form state for one transaction."""

    total: float = 0.0
    vendor: str = ""
    date: str = ""
    notes: str = ""
    splits: tuple[SplitInput, ...] = (SplitInput(0.0, OTHER_CATEGORY),)
    is_split: bool = False
    transaction_id: Optional[str] = None

    @property
    def remaining(self) -> float:
        return validate(self.total, self.vendor, self.splits).remaining

    def validate(self) -> ValidationResult:
        return validate(self.total, self.vendor, self.splits)

    @property
    def is_dirty(self) -> bool:
        return self.total != 0 or bool(self.vendor) or bool(self.notes)


def draft_from_transaction(splits: Sequence[Expense]) -> TransactionDraft:
    """Load an existing transaction into a draft for editing."""

    if not splits:
        raise ValidationError("Transaction has no splits.", field="transaction_id")
    first = splits[0]
    return TransactionDraft(
        total=sum(s.amount for s in splits),
        vendor=first.vendor,
        date=first.date,
        notes=first.notes or "",
        splits=tuple(SplitInput(s.amount, s.category) for s in splits),
        is_split=len(splits) > 1,
        transaction_id=first.transaction_id,
    )


def draft_from_parsed(parsed: "ParsedExpense", *, today: Optional[date] = None) -> TransactionDraft:
    """Prefill a draft from a text-understanding result (single split)."""

    return TransactionDraft(
        total=parsed.amount,
        vendor=parsed.vendor,
        date=(today or date.today()).isoformat(),
        notes=parsed.description or "",
        splits=(SplitInput(parsed.amount, parsed.category or OTHER_CATEGORY),),
        is_split=False,
    )


def collapse_splits(draft: TransactionDraft, category: Optional[str] = None) -> TransactionDraft:
    """Turn "split" off: one split carrying the full total.

    The category is ``category`` when given, else the first split's, else ``Other``.
    """

    chosen = category or (draft.splits[0].category if draft.splits else "") or OTHER_CATEGORY
    return replace(draft, splits=(SplitInput(draft.total, chosen),), is_split=False)


def add_split(draft: TransactionDraft, category: str = OTHER_CATEGORY) -> TransactionDraft:
    return replace(draft, splits=draft.splits + (SplitInput(0.0, category),), is_split=True)


def remove_split(draft: TransactionDraft, index: int) -> TransactionDraft:
    """Drop the split at ``index``; a draft always keeps at least one split."""

    if len(draft.splits) <= 1 or not 0 <= index < len(draft.splits):
        return draft
    remaining = draft.splits[:index] + draft.splits[index + 1 :]
    return replace(draft, splits=remaining)


def update_split(draft: TransactionDraft, index: int, *, amount: Optional[float] = None,
                 category: Optional[str] = None) -> TransactionDraft:
    current = draft.splits[index]
    changed = SplitInput(
        amount=current.amount if amount is None else amount,
        category=current.category if category is None else category,
    )
    return replace(draft, splits=draft.splits[:index] + (changed,) + draft.splits[index + 1 :])
