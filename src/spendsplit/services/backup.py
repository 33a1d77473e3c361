"""Backup documents: serialize, validate, upgrade and restore full state."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from ..errors import FormatError
from ..logging_config import get_logger
from ..models.category import CategoryDefinition
from ..models.currency import Currency
from ..models.expense import Expense
from .categories import default_categories, merge_legacy_categories

# Bumped to 3 when splits gained a shared transactionId.
SCHEMA_VERSION = 3

BACKUP_PREFIX = "spendsplit-expenses-backup"

logger = get_logger("services.backup")


@dataclass(frozen=True)
class RestoredState:
    """Validated contents of a backup document.

    ``categories`` is ``None`` when the document carries no category data at
    all, in which case the current registry is kept.
    """

    version: Optional[int]
    expenses: list[Expense]
    currency: Currency
    categories: Optional[list[CategoryDefinition]]
    upgraded: bool = False


def serialize(
    expenses: Iterable[Expense],
    categories: Iterable[CategoryDefinition],
    currency: Currency,
) -> dict[str, Any]:
    """Build the versioned backup document for the full state."""

    return {
        "version": SCHEMA_VERSION,
        "expenses": [e.to_dict() for e in expenses],
        "currency": currency.to_dict(),
        "categories": [c.to_dict() for c in categories],
    }


def upgrade_legacy_splits(raw_expenses: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Give every split lacking a ``transactionId`` its own id as transaction id.

    Idempotent: splits that already carry a transaction id are copied unchanged.
    """

    upgraded: list[dict[str, Any]] = []
    for raw in raw_expenses:
        record = dict(raw)
        if not record.get("transactionId"):
            record["transactionId"] = record.get("id")
        upgraded.append(record)
    return upgraded


def _document_version(document: Mapping[str, Any]) -> Optional[int]:
    raw = document.get("version")
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise FormatError(f"Invalid backup version: {raw!r}") from exc


def _parse_expenses(raw_expenses: list[Any]) -> list[Expense]:
    expenses: list[Expense] = []
    seen_ids: set[str] = set()
    for position, raw in enumerate(raw_expenses):
        if not isinstance(raw, Mapping) or "id" not in raw or "amount" not in raw:
            raise FormatError(f"Expense entry {position} is not a valid record.")
        try:
            expenses.append(Expense.from_dict(raw))
        except (TypeError, ValueError) as exc:
            raise FormatError(f"Expense entry {position} is not a valid record: {exc}") from exc
        if expenses[-1].id in seen_ids:
            raise FormatError(f"Expense entry {position} repeats split id {expenses[-1].id!r}.")
        seen_ids.add(expenses[-1].id)
    return expenses


def _parse_categories(document: Mapping[str, Any]) -> Optional[list[CategoryDefinition]]:
    if document.get("categories") is not None:
        raw_categories = document["categories"]
        if not isinstance(raw_categories, list):
            raise FormatError("Backup categories must be a list.")
        parsed: list[CategoryDefinition] = []
        seen_names: set[str] = set()
        for position, raw in enumerate(raw_categories):
            if not isinstance(raw, Mapping) or not str(raw.get("name") or "").strip():
                raise FormatError(f"Category entry {position} is not a valid record.")
            category = CategoryDefinition.from_dict(raw)
            key = category.name.lower()
            if key in seen_names:
                raise FormatError(f"Category entry {position} duplicates the name {category.name!r}.")
            seen_names.add(key)
            parsed.append(category)
        return parsed

    legacy = document.get("customCategories")
    if legacy is not None:
        if not isinstance(legacy, list):
            raise FormatError("Backup customCategories must be a list.")
        return merge_legacy_categories(default_categories(), legacy)
    return None


def deserialize(document: Any) -> RestoredState:
    """Validate a backup document and upgrade older schemas.

    Raises:
        FormatError: when ``expenses`` is not a list, ``currency.code`` is
            missing, or any record is malformed. Nothing is mutated here, so
            callers can swap state in only after this returns.
    """

    if not isinstance(document, Mapping):
        raise FormatError("Invalid backup file format.")
    raw_expenses = document.get("expenses")
    if not isinstance(raw_expenses, list):
        raise FormatError("Invalid backup file format: expenses must be a list.")
    raw_currency = document.get("currency")
    if not isinstance(raw_currency, Mapping) or not raw_currency.get("code"):
        raise FormatError("Invalid backup file format: currency code is missing.")

    version = _document_version(document)
    upgraded = version is None or version < SCHEMA_VERSION
    # Splits without a transaction id are repaired whatever the version.
    raw_expenses = upgrade_legacy_splits(raw_expenses)

    state = RestoredState(
        version=version,
        expenses=_parse_expenses(raw_expenses),
        currency=Currency.from_dict(raw_currency),
        categories=_parse_categories(document),
        upgraded=upgraded,
    )
    logger.debug(
        "Backup document parsed",
        extra={"version": version, "expenses": len(state.expenses), "upgraded": upgraded},
    )
    return state


def backup_filename(day: Optional[date] = None) -> str:
    """``spendsplit-expenses-backup-YYYY-MM-DD.json``."""

    return f"{BACKUP_PREFIX}-{(day or date.today()).isoformat()}.json"


def write_backup(document: Mapping[str, Any], target: Path) -> Path:
    """Write ``document`` as pretty-printed JSON.

    ``target`` may be a directory (the dated file name is used) or a file path.
    """

    path = target / backup_filename() if target.suffix.lower() != ".json" else target
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Backup written", extra={"path": str(path)})
    return path


def read_backup(source: Path) -> Any:
    """Load a backup file; unreadable or non-JSON content raises :class:`FormatError`."""

    if not source.exists():
        raise FileNotFoundError(f"Backup file not found: {source}")
    try:
        return json.loads(source.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FormatError(f"File content is not a valid backup: {exc}") from exc
