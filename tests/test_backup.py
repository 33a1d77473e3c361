"""Tests for backup documents: serialization, validation and legacy upgrades."""

from __future__ import annotations

import json
from datetime import date

import pytest

from spendsplit.constants.currencies import DEFAULT_CURRENCY
from spendsplit.errors import FormatError
from spendsplit.models import Currency
from spendsplit.services.backup import (
    SCHEMA_VERSION,
    backup_filename,
    deserialize,
    read_backup,
    serialize,
    upgrade_legacy_splits,
    write_backup,
)
from spendsplit.services.categories import default_categories


def _document(**overrides):
    doc = {
        "version": SCHEMA_VERSION,
        "expenses": [
            {
                "id": "1700000000000-abc",
                "transactionId": "1700000000000",
                "amount": 12.5,
                "vendor": "Cafe",
                "category": "Food",
                "date": "2024-01-05",
            }
        ],
        "currency": {"code": "USD", "name": "US Dollar", "symbol": "$"},
        "categories": [{"name": "Food", "color": "#34D399", "isDefault": True}],
    }
    doc.update(overrides)
    return doc


def test_serialize_shape(expense_factory):
    doc = serialize([expense_factory(notes="hi")], default_categories(), DEFAULT_CURRENCY)
    assert doc["version"] == 3
    assert doc["currency"] == {"code": "INR", "name": "Indian Rupee", "symbol": "₹"}
    record = doc["expenses"][0]
    assert set(record) == {"id", "transactionId", "amount", "vendor", "category", "date", "notes"}
    assert doc["categories"][0] == {"name": "Food", "color": "#34D399", "isDefault": True}


def test_serialize_omits_missing_notes(expense_factory):
    doc = serialize([expense_factory()], [], DEFAULT_CURRENCY)
    assert "notes" not in doc["expenses"][0]


def test_deserialize_current_version():
    state = deserialize(_document())
    assert state.version == 3
    assert not state.upgraded
    assert state.currency == Currency("USD", "US Dollar", "$")
    assert state.expenses[0].transaction_id == "1700000000000"
    assert [c.name for c in state.categories] == ["Food"]


def test_deserialize_upgrades_legacy_splits():
    doc = _document(version=2)
    del doc["expenses"][0]["transactionId"]
    state = deserialize(doc)
    assert state.upgraded
    assert state.expenses[0].transaction_id == "1700000000000-abc"


def test_upgrade_is_idempotent():
    raw = [{"id": "a"}, {"id": "b", "transactionId": "t"}]
    once = upgrade_legacy_splits(raw)
    assert upgrade_legacy_splits(once) == once
    assert [r["transactionId"] for r in once] == ["a", "t"]


def test_deserialize_merges_legacy_custom_categories():
    doc = _document(version=None)
    del doc["categories"]
    doc["customCategories"] = [{"name": "Pets", "color": "#123456"}, {"name": "FOOD", "color": "#000000"}]
    state = deserialize(doc)
    names = [c.name for c in state.categories]
    assert "Pets" in names
    assert "FOOD" not in names
    assert names.count("Food") == 1


def test_deserialize_without_category_data_keeps_none():
    doc = _document()
    del doc["categories"]
    assert deserialize(doc).categories is None


@pytest.mark.parametrize(
    "document",
    [
        [],
        "not a document",
        {"currency": {"code": "USD"}},
        {"expenses": {}, "currency": {"code": "USD"}},
        {"expenses": []},
        {"expenses": [], "currency": {"name": "Dollar"}},
        {"expenses": [{"vendor": "no id"}], "currency": {"code": "USD"}},
        {"expenses": [{"id": "1", "amount": "lots"}], "currency": {"code": "USD"}},
        {"expenses": [], "currency": {"code": "USD"}, "categories": "Food"},
    ],
)
def test_deserialize_rejects_malformed_documents(document):
    with pytest.raises(FormatError):
        deserialize(document)


def test_backup_filename():
    assert backup_filename(date(2024, 5, 6)) == "spendsplit-expenses-backup-2024-05-06.json"


def test_write_and_read_backup(tmp_path):
    doc = _document()
    path = write_backup(doc, tmp_path / "exports")
    assert path.parent == tmp_path / "exports"
    assert path.name.startswith("spendsplit-expenses-backup-")
    assert read_backup(path) == doc
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 3

    explicit = write_backup(doc, tmp_path / "mine.json")
    assert explicit == tmp_path / "mine.json"


def test_read_backup_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_backup(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(FormatError):
        read_backup(bad)


def test_deserialize_repairs_missing_transaction_ids_in_current_version():
    doc = _document(expenses=[
        {"id": "1700000000001", "amount": 5, "vendor": "A", "category": "Food", "date": "2024-01-05"},
        {"id": "1700000000002", "amount": 7, "vendor": "B", "category": "Food", "date": "2024-01-05"},
    ])
    state = deserialize(doc)
    assert [e.transaction_id for e in state.expenses] == ["1700000000001", "1700000000002"]
    assert not state.upgraded


def test_deserialize_rejects_duplicate_split_ids():
    split = {"id": "x", "transactionId": "1", "amount": 5, "vendor": "A", "category": "Food", "date": "2024-01-05"}
    with pytest.raises(FormatError, match="repeats split id"):
        deserialize(_document(expenses=[split, dict(split, amount=6)]))


@pytest.mark.parametrize("duplicate", ["Food", "food", " FOOD "])
def test_deserialize_rejects_duplicate_category_names(duplicate):
    categories = [
        {"name": "Food", "color": "#34D399", "isDefault": True},
        {"name": duplicate, "color": "#111111"},
        {"name": "Other", "color": "#9CA3AF", "isDefault": True},
    ]
    with pytest.raises(FormatError, match="duplicates the name"):
        deserialize(_document(categories=categories))
