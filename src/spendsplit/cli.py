"""Command line interface for SpendSplit."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Optional

import click

from .config import BaseConfig
from .constants.categories import OTHER_CATEGORY
from .constants.currencies import find_currency, search_currencies
from .context import AppContext, create_app_context
from .errors import FormatError, ImmutableEntryError, ValidationError
from .logging_config import setup_logging
from .models.transaction import Transaction
from .services.ledger_service import Pagination, format_display_date
from .services.transactions import (
    SplitInput,
    collapse_splits,
    draft_from_parsed,
    draft_from_transaction,
)


class SpendSplitGroup(click.Group):
    """Click group turning domain errors into clean CLI failures."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except (ValidationError, ImmutableEntryError, FormatError, FileNotFoundError) as exc:
            raise click.ClickException(str(exc)) from exc


def _money(app: AppContext, amount: float) -> str:
    return f"{app.currency.symbol}{amount:,.2f}"


def _parse_split(raw: str) -> SplitInput:
    """``CATEGORY=AMOUNT`` -> :class:`SplitInput`."""

    category, sep, amount = raw.rpartition("=")
    if not sep or not category.strip():
        raise click.BadParameter(f"expected CATEGORY=AMOUNT, got {raw!r}", param_hint="--split")
    try:
        value = float(amount)
    except ValueError as exc:
        raise click.BadParameter(f"invalid amount in {raw!r}", param_hint="--split") from exc
    return SplitInput(amount=value, category=category.strip())


def _echo_transaction(app: AppContext, txn: Transaction) -> None:
    header = f"[{txn.transaction_id}] {txn.vendor}  {_money(app, txn.total)}"
    click.echo(header)
    if txn.notes:
        click.echo(f"    {txn.notes}")
    if txn.is_split:
        for split in txn.splits:
            click.echo(f"    - {split.category}: {_money(app, split.amount)}")
    else:
        click.echo(f"    {txn.splits[0].category}")


@click.group(cls=SpendSplitGroup)
@click.pass_context
def main(ctx: click.Context) -> None:
    """Track expenses split across categories."""

    if ctx.obj is None:
        config = BaseConfig()
        setup_logging(config)
        ctx.obj = create_app_context(config)


@main.command("add")
@click.option("--amount", "-a", "total", type=float, required=True, help="Total amount paid")
@click.option("--vendor", "-v", required=True, help="Who was paid")
@click.option("--date", "-d", "day", default=None, help="YYYY-MM-DD (defaults to today)")
@click.option("--category", "-c", default=OTHER_CATEGORY, show_default=True, help="Category for a single split")
@click.option("--split", "-s", "splits", multiple=True, help="CATEGORY=AMOUNT, repeat to split")
@click.option("--notes", "-n", default=None)
@click.pass_obj
def add_command(
    app: AppContext,
    total: float,
    vendor: str,
    day: Optional[str],
    category: str,
    splits: tuple[str, ...],
    notes: Optional[str],
) -> None:
    """Record a new transaction."""

    split_inputs = [_parse_split(s) for s in splits] or [SplitInput(total, category)]
    txn = app.add_transaction(
        total=total,
        vendor=vendor,
        date=day or date.today().isoformat(),
        splits=split_inputs,
        notes=notes,
    )
    click.echo(f"Added transaction {txn.transaction_id} ({len(txn.splits)} split(s)).")


@main.command("edit")
@click.argument("transaction_id")
@click.option("--amount", "-a", "total", type=float, default=None)
@click.option("--vendor", "-v", default=None)
@click.option("--date", "-d", "day", default=None)
@click.option("--category", "-c", default=None, help="Collapse to a single split in this category")
@click.option("--split", "-s", "splits", multiple=True, help="CATEGORY=AMOUNT, replaces all splits")
@click.option("--notes", "-n", default=None)
@click.pass_obj
def edit_command(
    app: AppContext,
    transaction_id: str,
    total: Optional[float],
    vendor: Optional[str],
    day: Optional[str],
    category: Optional[str],
    splits: tuple[str, ...],
    notes: Optional[str],
) -> None:
    """Edit a transaction; unspecified fields keep their current values."""

    existing = app.ledger.get_transaction(transaction_id)
    if not existing:
        raise click.ClickException(f"Transaction {transaction_id} does not exist.")
    draft = draft_from_transaction(existing)
    if total is not None:
        draft = replace(draft, total=total)
        if not draft.is_split:
            draft = collapse_splits(draft)
    if category is not None:
        draft = collapse_splits(draft, category)
    split_inputs = [_parse_split(s) for s in splits] if splits else list(draft.splits)

    txn = app.update_transaction(
        transaction_id,
        total=draft.total,
        vendor=vendor if vendor is not None else draft.vendor,
        date=day or draft.date,
        splits=split_inputs,
        notes=notes if notes is not None else draft.notes,
    )
    click.echo(f"Updated transaction {txn.transaction_id}.")


@main.command("delete")
@click.argument("transaction_id")
@click.pass_obj
def delete_command(app: AppContext, transaction_id: str) -> None:
    """Delete every split of a transaction."""

    removed = app.delete_transaction(transaction_id)
    if removed:
        click.echo(f"Deleted transaction {transaction_id} ({removed} split(s)).")
    else:
        click.echo(f"No transaction {transaction_id}; nothing deleted.")


@main.command("list")
@click.option("--month", "-m", default=None, help="YYYY-MM")
@click.option("--category", "-c", default=None)
@click.option("--search", "-q", default=None, help="Match vendor or notes.")
@click.option("--page", "-p", type=click.IntRange(min=1), default=None)
@click.option("--per-page", type=click.IntRange(min=1), default=25, show_default=True)
@click.pass_obj
def list_command(
    app: AppContext,
    month: Optional[str],
    category: Optional[str],
    search: Optional[str],
    page: Optional[int],
    per_page: int,
) -> None:
    """List transactions grouped by date."""

    pagination = Pagination(page=page, per_page=per_page) if page else None
    grouped, total = app.list_transactions(month=month, category=category, search=search, pagination=pagination)
    if not grouped:
        click.echo("No expenses found.")
        return
    for day, txns in grouped.items():
        click.echo(format_display_date(day))
        for txn in txns:
            _echo_transaction(app, txn)
    if pagination is not None:
        pages = -(-total // per_page)
        click.echo(f"Page {page} of {pages} ({total} transaction(s))")


@main.command("summary")
@click.pass_obj
def summary_command(app: AppContext) -> None:
    """Show the dashboard numbers."""

    summary = app.summary()
    click.echo(f"Today:       {_money(app, summary.today)}")
    click.echo(f"This month:  {_money(app, summary.this_month)}")
    click.echo(f"Last month:  {_money(app, summary.last_month)}")
    click.echo(f"Change:      {summary.month_over_month:+.1f}%")
    if summary.category_breakdown:
        click.echo("By category:")
        for name, amount in sorted(summary.category_breakdown.items(), key=lambda kv: kv[1], reverse=True):
            click.echo(f"  {name}: {_money(app, amount)}")


@main.group("categories", cls=SpendSplitGroup)
def categories_group() -> None:
    """Manage categories."""


@categories_group.command("list")
@click.pass_obj
def categories_list(app: AppContext) -> None:
    for entry in app.registry.sorted_for_display():
        marker = " (default)" if entry.is_default else ""
        click.echo(f"{entry.name}{marker} {entry.color}")


@categories_group.command("add")
@click.argument("name")
@click.option("--color", default=None, help="#rrggbb")
@click.pass_obj
def categories_add(app: AppContext, name: str, color: Optional[str]) -> None:
    entry = app.add_category(name, color)
    click.echo(f"Added category {entry.name}.")


@categories_group.command("rename")
@click.argument("old_name")
@click.argument("new_name")
@click.option("--color", default=None)
@click.pass_obj
def categories_rename(app: AppContext, old_name: str, new_name: str, color: Optional[str]) -> None:
    moved = app.rename_category(old_name, new_name, color)
    click.echo(f"Renamed {old_name} to {new_name.strip()} ({moved} split(s) updated).")


@categories_group.command("delete")
@click.argument("name")
@click.pass_obj
def categories_delete(app: AppContext, name: str) -> None:
    moved = app.delete_category(name)
    click.echo(f"Deleted {name} ({moved} split(s) moved to {OTHER_CATEGORY}).")


@main.group("currency", cls=SpendSplitGroup)
def currency_group() -> None:
    """Show or change the display currency."""


@currency_group.command("show")
@click.pass_obj
def currency_show(app: AppContext) -> None:
    c = app.currency
    click.echo(f"{c.code} - {c.name} ({c.symbol})")


@currency_group.command("set")
@click.argument("code")
@click.pass_obj
def currency_set(app: AppContext, code: str) -> None:
    currency = find_currency(code)
    if currency is None:
        raise click.ClickException(f"Unknown currency code: {code}")
    app.set_currency(currency)
    click.echo(f"Currency set to {currency.code}.")


@currency_group.command("search")
@click.argument("term", required=False, default="")
def currency_search(term: str) -> None:
    for c in search_currencies(term):
        click.echo(f"{c.code} - {c.name} ({c.symbol})")


@main.command("backup")
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None)
@click.pass_obj
def backup_command(app: AppContext, output: Optional[Path]) -> None:
    """Write a JSON backup of all data."""

    path = app.backup(output)
    click.echo(f"Backup written: {path}")


@main.command("restore")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--yes", is_flag=True, help="Skip the overwrite confirmation")
@click.pass_obj
def restore_command(app: AppContext, path: Path, yes: bool) -> None:
    """Replace all data with the contents of a backup file."""

    if not yes:
        click.confirm("This will overwrite all current data. Continue?", abort=True)
    state = app.restore_file(path)
    click.echo(f"Restored {len(state.expenses)} expense record(s).")


@main.command("parse")
@click.argument("text")
@click.option("--save", is_flag=True, help="Record the parsed expense")
@click.pass_obj
def parse_command(app: AppContext, text: str, save: bool) -> None:
    """Extract an expense from pasted notification text."""

    result = app.parse_expense_text(text)
    if result.value is None:
        raise click.ClickException(result.error or "Nothing parsed.")
    parsed = result.value
    click.echo(f"Amount:   {_money(app, parsed.amount)}")
    click.echo(f"Vendor:   {parsed.vendor}")
    click.echo(f"Category: {parsed.category or OTHER_CATEGORY}")
    if parsed.description:
        click.echo(f"Notes:    {parsed.description}")
    if save:
        draft = draft_from_parsed(parsed)
        txn = app.add_transaction(
            total=draft.total,
            vendor=draft.vendor,
            date=draft.date,
            splits=list(draft.splits),
            notes=draft.notes,
        )
        click.echo(f"Added transaction {txn.transaction_id}.")


@main.command("report")
@click.option("--month", "-m", default=None, help="YYYY-MM (defaults to the latest month with data)")
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None)
@click.pass_obj
def report_command(app: AppContext, month: Optional[str], output: Optional[Path]) -> None:
    """Generate the monthly report and save it as text."""

    month = month or app.report_months()[0].key
    report = app.generate_report(month)
    if report.error:
        click.echo(f"Warning: {report.error}", err=True)
    path = app.write_report(report, output)
    click.echo(f"Report written: {path}")


if __name__ == "__main__":  # pragma: no cover
    main()
