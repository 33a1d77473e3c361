"""Spending aggregation over ledger snapshots.

All functions are pure. Windows are half-open ``[start, end)`` calendar-date
ranges computed from explicit UTC month boundaries (day 1 of a month up to
day 1 of the next), never from elapsed-day arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from ..models.expense import Expense
from .ledger_service import MONTH_NAMES


def utc_today(now: Optional[datetime] = None) -> date:
    """Calendar date of ``now`` in UTC; naive datetimes are taken as UTC."""

    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


def parse_expense_date(value: str) -> Optional[date]:
    """Parse a stored ``YYYY-MM-DD`` date; anything unparseable yields ``None``."""

    try:
        return date.fromisoformat(value[:10]) if value and len(value) >= 10 else None
    except ValueError:
        return None


def month_start(year: int, month: int) -> date:
    """First day of ``month``; out-of-range months roll into adjacent years."""

    index = year * 12 + (month - 1)
    return date(index // 12, index % 12 + 1, 1)


def month_window(reference: date, months_back: int = 0) -> tuple[date, date]:
    """``[start, end)`` of the month ``months_back`` months before ``reference``'s."""

    start = month_start(reference.year, reference.month - months_back)
    end = month_start(start.year, start.month + 1)
    return start, end


def month_window_for(month: str) -> tuple[date, date]:
    """Window for a ``YYYY-MM`` key."""

    year, number = month.split("-")[:2]
    start = month_start(int(year), int(number))
    return start, month_start(start.year, start.month + 1)


def short_month_name(day: date) -> str:
    return MONTH_NAMES[day.month - 1][:3]


def _in_window(expenses: Iterable[Expense], start: date, end: date) -> Iterable[Expense]:
    for expense in expenses:
        day = parse_expense_date(expense.date)
        if day is not None and start <= day < end:
            yield expense


def period_spend(expenses: Iterable[Expense], start: date, end: date) -> float:
    """Sum of amounts dated within ``[start, end)``."""

    return sum((e.amount for e in _in_window(expenses, start, end)), 0.0)


def today_spend(expenses: Iterable[Expense], now: Optional[datetime] = None) -> float:
    """Sum of amounts dated on the same UTC calendar day as ``now``."""

    today = utc_today(now)
    return period_spend(expenses, today, today + timedelta(days=1))


def category_breakdown(expenses: Iterable[Expense], start: date, end: date) -> dict[str, float]:
    """Category -> summed amount within ``[start, end)``; idle categories are omitted."""

    totals: dict[str, float] = {}
    for expense in _in_window(expenses, start, end):
        totals[expense.category] = totals.get(expense.category, 0.0) + expense.amount
    return {name: amount for name, amount in totals.items() if amount != 0}


def sorted_category_totals(expenses: Iterable[Expense]) -> list[tuple[str, float]]:
    """Per-category totals for the given splits, largest first."""

    totals: dict[str, float] = {}
    for expense in expenses:
        totals[expense.category] = totals.get(expense.category, 0.0) + expense.amount
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


def month_over_month_change(this_month: float, last_month: float) -> float:
    """Percent change; a zero prior month reports 0 (no spend) or 100 (any spend)."""

    if last_month == 0:
        return 100.0 if this_month > 0 else 0.0
    return (this_month - last_month) / last_month * 100


@dataclass(frozen=True, slots=True)
class MonthlySpend:
    """One bar of the month-comparison series."""

    name: str
    spend: float


@dataclass(frozen=True)
class DashboardSummary:
    today: float
    this_month: float
    last_month: float
    two_months_ago: float
    month_over_month: float
    category_breakdown: dict[str, float] = field(default_factory=dict)
    monthly_comparison: list[MonthlySpend] = field(default_factory=list)


def dashboard_summary(expenses: Iterable[Expense], now: Optional[datetime] = None) -> DashboardSummary:
    """Headline numbers for the dashboard, relative to ``now`` (UTC)."""

    snapshot = list(expenses)
    today = utc_today(now)
    this_start, this_end = month_window(today)
    last_start, last_end = month_window(today, 1)
    prior_start, prior_end = month_window(today, 2)

    this_month = period_spend(snapshot, this_start, this_end)
    last_month = period_spend(snapshot, last_start, last_end)
    two_months_ago = period_spend(snapshot, prior_start, prior_end)

    comparison = [
        MonthlySpend(short_month_name(prior_start), two_months_ago),
        MonthlySpend(short_month_name(last_start), last_month),
        MonthlySpend(short_month_name(this_start), this_month),
    ]

    return DashboardSummary(
        today=today_spend(snapshot, now),
        this_month=this_month,
        last_month=last_month,
        two_months_ago=two_months_ago,
        month_over_month=month_over_month_change(this_month, last_month),
        category_breakdown=category_breakdown(snapshot, this_start, this_end),
        # Months without spend are left out of the comparison series.
        monthly_comparison=[point for point in comparison if point.spend > 0],
    )
