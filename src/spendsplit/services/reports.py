"""Monthly reports: per-category totals plus the generated spending analysis."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from ..config import BaseConfig
from ..errors import ValidationError
from ..logging_config import get_logger
from ..models.currency import Currency
from ..models.expense import Expense
from .aggregation import sorted_category_totals
from .assistant import REPORT_FAILURE_PREFIX, generate_report_text
from .ledger_service import ExpenseLedger, month_label

REPORT_PREFIX = "spendsplit-monthly-report"

_MARKDOWN = re.compile(r"\*\*|__|[*_#`]")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

logger = get_logger("services.reports")


@dataclass(frozen=True, slots=True)
class ReportMonth:
    key: str  # YYYY-MM
    label: str


@dataclass(frozen=True)
class MonthlyReport:
    month: str
    label: str
    currency: Currency
    total: float
    category_totals: list[tuple[str, float]] = field(default_factory=list)
    paragraphs: list[str] = field(default_factory=list)
    error: Optional[str] = None


def report_months(ledger: ExpenseLedger, today: Optional[date] = None) -> list[ReportMonth]:
    """Months that have data, newest first; the current month when the ledger is empty."""

    keys = sorted({e.date[:7] for e in ledger if len(e.date) >= 7}, reverse=True)
    if not keys:
        keys = [(today or date.today()).strftime("%Y-%m")]
    return [ReportMonth(key=k, label=month_label(k)) for k in keys]


def expenses_for_month(ledger: ExpenseLedger, month: str) -> list[Expense]:
    return ledger.filter_expenses(month=month)


def clean_analysis_text(text: str) -> str:
    """Strip markdown emphasis, heading and code markers."""

    return _MARKDOWN.sub("", text or "")


def split_paragraphs(text: str) -> list[str]:
    """Paragraphs separated by blank lines; single newlines inside become spaces."""

    paragraphs = []
    for block in _PARAGRAPH_BREAK.split(clean_analysis_text(text).strip()):
        joined = " ".join(line.strip() for line in block.splitlines() if line.strip())
        if joined:
            paragraphs.append(joined)
    return paragraphs


def build_monthly_report(
    expenses: Sequence[Expense],
    month: str,
    currency: Currency,
    allowed_categories: Optional[Sequence[str]] = None,
    *,
    config: Optional[BaseConfig] = None,
    client: Any = None,
) -> MonthlyReport:
    """Combine category totals with the generated prose for ``month``.

    Raises:
        ValidationError: when the month has no expenses.
    """

    if not expenses:
        raise ValidationError("No expenses recorded for this month.", field="month")

    label = month_label(month)
    totals = sorted_category_totals(expenses)
    result = generate_report_text(
        expenses, currency.symbol, label, allowed_categories, config=config, client=client
    )
    paragraphs: list[str] = []
    error = result.error
    if result.value is not None:
        if result.value.startswith(REPORT_FAILURE_PREFIX):
            error = result.value
        else:
            paragraphs = split_paragraphs(result.value)

    if error:
        logger.warning("Monthly report has no analysis", extra={"month": month, "reason": error})

    return MonthlyReport(
        month=month,
        label=label,
        currency=currency,
        total=sum((amount for _, amount in totals), 0.0),
        category_totals=totals,
        paragraphs=paragraphs,
        error=error,
    )


def report_filename(month: str) -> str:
    return f"{REPORT_PREFIX}-{month}.txt"


def format_report(report: MonthlyReport) -> str:
    symbol = report.currency.symbol
    lines = [f"Monthly Report: {report.label}", "", "Spending by category"]
    lines.extend(
        f"  {name}: {symbol}{amount:,.2f} ({share:.1f}%)"
        for name, amount, share in category_share(report.category_totals)
    )
    lines.append(f"  Total: {symbol}{report.total:,.2f}")
    lines.extend(["", "Analysis"])
    if report.paragraphs:
        for paragraph in report.paragraphs:
            lines.extend([paragraph, ""])
    else:
        lines.append(report.error or "No analysis available.")
    return "\n".join(lines).rstrip() + "\n"


def render_report_text(report: MonthlyReport, target: Path) -> Path:
    """Write the plain-text report; ``target`` may be a directory or a ``.txt`` path."""

    path = target / report_filename(report.month) if target.suffix.lower() != ".txt" else target
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_report(report), encoding="utf-8")
    logger.info("Report written", extra={"path": str(path), "month": report.month})
    return path


def category_share(totals: Iterable[tuple[str, float]]) -> list[tuple[str, float, float]]:
    """Attach each category's percentage of the total."""

    items = list(totals)
    grand = sum(amount for _, amount in items)
    return [(name, amount, amount / grand * 100 if grand else 0.0) for name, amount in items]
