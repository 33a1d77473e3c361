"""Integration tests for the application context and its persistence."""

from __future__ import annotations

import json

import pytest

from spendsplit.config import BaseConfig
from spendsplit.constants.categories import DEFAULT_CATEGORIES, OTHER_CATEGORY
from spendsplit.constants.currencies import DEFAULT_CURRENCY, find_currency
from spendsplit.context import CURRENCY_SETTING, LEGACY_CATEGORIES_SETTING, create_app_context
from spendsplit.errors import FormatError, ImmutableEntryError, ValidationError
from spendsplit.infra.database import bootstrap_database
from spendsplit.infra.repositories import SQLModelExpenseRepository, SQLModelSettingsRepository
from spendsplit.models import Expense
from spendsplit.services.ledger_service import Pagination
from spendsplit.services.transactions import SplitInput
from tests.conftest import assert_float_equal


def _add(ctx, total=100.0, splits=None, **kwargs):
    return ctx.add_transaction(
        total=total,
        vendor=kwargs.pop("vendor", "Mart"),
        date=kwargs.pop("date", "2024-01-15"),
        splits=splits or [SplitInput(total, "Food")],
        **kwargs,
    )


def test_first_run_seeds_defaults_and_currency(app_context):
    assert sorted(c.name for c in app_context.registry) == sorted(DEFAULT_CATEGORIES)
    assert app_context.currency == DEFAULT_CURRENCY
    stored = app_context.settings_repo.get_json(CURRENCY_SETTING)
    assert stored["code"] == "INR"


def test_memory_context_uses_test_config(memory_context):
    assert memory_context.config.DATABASE_URL == "sqlite://"
    txn = _add(memory_context)
    assert memory_context.get_transaction(txn.transaction_id) is not None


def test_add_transaction_persists(app_context):
    txn = _add(app_context, splits=[SplitInput(60, "food"), SplitInput(40, "Health")], notes="weekly")
    assert {s.category for s in txn.splits} == {"Food", "Health"}

    reloaded = create_app_context()
    stored = reloaded.get_transaction(txn.transaction_id)
    assert stored is not None
    assert len(stored.splits) == 2
    assert_float_equal(stored.total, 100.0)
    assert stored.notes == "weekly"


def test_new_ids_are_increasing(app_context):
    first = _add(app_context)
    second = _add(app_context)
    assert int(second.transaction_id) > int(first.transaction_id)


def test_reloaded_context_never_reuses_ids(app_context):
    first = _add(app_context)
    reloaded = create_app_context()
    second = _add(reloaded)
    assert int(second.transaction_id) > int(first.transaction_id)


def test_invalid_transaction_leaves_state_unchanged(app_context):
    with pytest.raises(ValidationError):
        _add(app_context, splits=[SplitInput(50, "Food")])
    with pytest.raises(ValidationError) as exc:
        _add(app_context, splits=[SplitInput(100, "Rocketry")])
    assert exc.value.field == "category"
    assert len(app_context.ledger) == 0
    assert app_context.expense_repo.count() == 0


def test_update_and_delete_transaction(app_context):
    txn = _add(app_context)
    app_context.update_transaction(
        txn.transaction_id,
        total=120.0,
        vendor="Mart",
        date="2024-01-20",
        splits=[SplitInput(100, "Food"), SplitInput(20, "Health")],
    )
    updated = app_context.get_transaction(txn.transaction_id)
    assert len(updated.splits) == 2
    assert updated.date == "2024-01-20"

    assert app_context.delete_transaction(txn.transaction_id) == 2
    assert app_context.get_transaction(txn.transaction_id) is None
    assert app_context.delete_transaction(txn.transaction_id) == 0
    assert create_app_context().ledger.has_transaction(txn.transaction_id) is False


def test_rename_category_cascades(app_context):
    app_context.add_category("Groceries")
    _add(app_context, splits=[SplitInput(100, "groceries")])
    moved = app_context.rename_category("Groceries", "Supermarket")
    assert moved == 1
    assert {e.category for e in app_context.ledger} == {"Supermarket"}

    reloaded = create_app_context()
    assert reloaded.registry.contains("Supermarket")
    assert {e.category for e in reloaded.ledger} == {"Supermarket"}


def test_delete_category_reassigns_to_other(app_context):
    app_context.add_category("Pets")
    _add(app_context, splits=[SplitInput(30, "Pets"), SplitInput(70, "Food")])
    assert app_context.delete_category("Pets") == 1
    assert not app_context.registry.contains("Pets")
    assert sorted(e.category for e in app_context.ledger) == ["Food", OTHER_CATEGORY]


def test_protected_categories(app_context):
    with pytest.raises(ImmutableEntryError):
        app_context.delete_category("Other")
    with pytest.raises(ImmutableEntryError):
        app_context.delete_category("Food")
    with pytest.raises(ImmutableEntryError):
        app_context.rename_category("Other", "Misc")
    assert app_context.registry.contains("Other")
    assert app_context.registry.contains("Food")


def test_set_currency_persists(app_context):
    app_context.set_currency(find_currency("usd"))
    assert create_app_context().currency.code == "USD"


def test_backup_restore_roundtrip(app_context, tmp_path):
    app_context.add_category("Pets", "#abcdef")
    txn = _add(app_context, splits=[SplitInput(25, "Pets"), SplitInput(75, "Food")])
    app_context.set_currency(find_currency("EUR"))
    path = app_context.backup(tmp_path / "out")

    app_context.delete_transaction(txn.transaction_id)
    app_context.delete_category("Pets")
    app_context.set_currency(DEFAULT_CURRENCY)

    state = app_context.restore_file(path)
    assert len(state.expenses) == 2
    assert app_context.currency.code == "EUR"
    assert app_context.registry.find("Pets").color == "#abcdef"
    assert app_context.get_transaction(txn.transaction_id).total == 100


def test_restore_failure_leaves_state_untouched(app_context):
    _add(app_context)
    before = [e.to_dict() for e in app_context.ledger]
    with pytest.raises(FormatError):
        app_context.restore({"expenses": "nope", "currency": {"code": "USD"}})
    with pytest.raises(FormatError):
        app_context.restore({"expenses": [], "currency": {}})
    assert [e.to_dict() for e in app_context.ledger] == before
    assert app_context.currency == DEFAULT_CURRENCY


def test_restore_legacy_document_readds_other(app_context):
    document = {
        "expenses": [
            {"id": "1600000000000", "amount": 10, "vendor": "Old", "category": "Food", "date": "2020-01-01"}
        ],
        "currency": {"code": "GBP", "name": "British Pound", "symbol": "£"},
        "categories": [{"name": "Food", "color": "#34D399", "isDefault": True}],
    }
    state = app_context.restore(document)
    assert state.upgraded
    assert app_context.ledger.has_transaction("1600000000000")
    assert app_context.registry.contains(OTHER_CATEGORY)

    txn = _add(app_context)
    assert int(txn.transaction_id) > 1_600_000_000_000


def test_load_repairs_legacy_data(data_dir):
    _, session_factory = bootstrap_database(BaseConfig())
    SQLModelExpenseRepository(session_factory).replace_all(
        [Expense(id="legacy-1", transaction_id="", amount=5.0, vendor="V", category="Food", date="2023-05-01")]
    )
    SQLModelSettingsRepository(session_factory).set(
        LEGACY_CATEGORIES_SETTING, json.dumps([{"name": "Pets", "color": "#111111"}])
    )

    ctx = create_app_context()
    assert ctx.ledger.has_transaction("legacy-1")
    assert ctx.registry.contains("Pets")
    assert ctx.registry.contains("Food")
    assert ctx.settings_repo.get(LEGACY_CATEGORIES_SETTING) is None
    assert {e.transaction_id for e in ctx.expense_repo.list_all()} == {"legacy-1"}


def test_parse_expense_text_without_key_reports_not_configured(app_context):
    result = app_context.parse_expense_text("Rs 250 spent at Swiggy")
    assert result.value is None
    assert "OPENAI_API_KEY" in result.error


def test_parse_expense_text_with_stub_client(app_context, stub_client):
    app_context.ai_client = stub_client(
        json.dumps({"isExpense": True, "amount": 250, "vendor": "Swiggy", "description": None, "category": "food"})
    )
    result = app_context.parse_expense_text("Rs 250 spent at Swiggy")
    assert result.value.category == "Food"
    assert len(app_context.ledger) == 0


def test_generate_report_for_empty_month_fails(app_context):
    with pytest.raises(ValidationError):
        app_context.generate_report("2024-01")


def test_generate_and_write_report(app_context, stub_client, tmp_path):
    _add(app_context, date="2024-01-10")
    app_context.ai_client = stub_client("**Nice** month.\n\nSave more on food.")
    report = app_context.generate_report("2024-01")
    assert report.paragraphs == ["Nice month.", "Save more on food."]
    path = app_context.write_report(report, tmp_path)
    assert path.name == "spendsplit-monthly-report-2024-01.txt"
    assert "January 2024" in path.read_text(encoding="utf-8")


def test_restore_gives_each_unlinked_split_its_own_transaction(app_context):
    document = {
        "version": 3,
        "expenses": [
            {"id": "1700000000001", "amount": 5, "vendor": "A", "category": "Food", "date": "2024-01-05"},
            {"id": "1700000000002", "amount": 7, "vendor": "B", "category": "Food", "date": "2024-01-05"},
        ],
        "currency": {"code": "USD", "name": "US Dollar", "symbol": "$"},
    }
    app_context.restore(document)
    assert all(e.transaction_id for e in app_context.ledger)
    assert len(app_context.ledger.transactions()) == 2
    assert app_context.delete_transaction("1700000000001") == 1
    assert app_context.get_transaction("1700000000002").vendor == "B"


def test_restore_rejects_duplicates_before_touching_state(app_context):
    _add(app_context)
    before = [e.to_dict() for e in app_context.ledger]
    split = {"id": "x", "transactionId": "1", "amount": 5, "vendor": "A", "category": "Food", "date": "2024-01-05"}
    with pytest.raises(FormatError):
        app_context.restore({"version": 3, "expenses": [split, split], "currency": {"code": "USD"}})
    with pytest.raises(FormatError):
        app_context.restore({
            "version": 3,
            "expenses": [],
            "currency": {"code": "USD"},
            "categories": [{"name": "Food"}, {"name": "food"}],
        })
    assert [e.to_dict() for e in app_context.ledger] == before
    assert [c.name.lower() for c in app_context.registry].count("food") == 1


def test_list_transactions_search_and_pages(app_context):
    for day in range(1, 6):
        _add(app_context, total=10.0, vendor="Cafe" if day % 2 else "Mart", date=f"2024-01-0{day}")

    grouped, total = app_context.list_transactions(search="cafe")
    assert total == 3
    assert sorted(grouped) == ["2024-01-01", "2024-01-03", "2024-01-05"]

    grouped, total = app_context.list_transactions(pagination=Pagination(page=2, per_page=2))
    assert total == 5
    assert list(grouped) == ["2024-01-03", "2024-01-02"]
