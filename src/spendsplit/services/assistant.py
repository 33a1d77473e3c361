"""Adapters for the external text-understanding and report services.

Both calls go to the OpenAI Responses API. Neither ever raises past this
module: failures come back as an :class:`AssistantResult` with ``value=None``
and a human-readable ``error``. Results are candidates only; committing them
is the caller's job through the normal transaction path.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Generic, Iterable, Mapping, Optional, Sequence, TypeVar

from openai import OpenAI

from ..config import BaseConfig
from ..constants.categories import DEFAULT_CATEGORIES
from ..logging_config import get_logger
from ..models.expense import Expense
from .text_utils import sanitize_sms_text

logger = get_logger("services.assistant")

T = TypeVar("T")

REPORT_FAILURE_PREFIX = "Report generation failed"
NOT_CONFIGURED = "AI features are not available: OPENAI_API_KEY is not set."


@dataclass(frozen=True, slots=True)
class ParsedExpense:
    """Expense candidate extracted from pasted text."""

    amount: float
    vendor: str
    category: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class AssistantResult(Generic[T]):
    value: Optional[T]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.value is not None


def _create_client(config: BaseConfig) -> Optional[OpenAI]:
    if not config.ai_enabled:
        return None
    return OpenAI(api_key=config.OPENAI_API_KEY)


def _categories_or_defaults(categories: Optional[Sequence[str]]) -> list[str]:
    return list(categories) if categories else list(DEFAULT_CATEGORIES)


def _extract_output_text(resp: Any) -> str:
    """Locate the text of a Responses API result.

    Prefers ``resp.output_text``; falls back to ``resp.output[0].content[0].text``.
    """

    text: Optional[str] = getattr(resp, "output_text", None)
    if not text:
        output = getattr(resp, "output", None) or []
        content = getattr(output[0], "content", None) if output else None
        if content:
            candidate = getattr(content[0], "text", None)
            text = candidate if isinstance(candidate, str) else getattr(candidate, "value", None)
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")
    return text


# ---------------------------------------------------------------------------
# Text understanding
# ---------------------------------------------------------------------------


def build_parse_instructions(categories: Sequence[str]) -> str:
    return (
        "Analyze text that is likely an SMS or notification about a financial transaction. "
        "Decide whether it describes a spending transaction.\n"
        "- If it IS a spending transaction: set isExpense to true, extract the amount and the "
        "vendor (the merchant, not the bank or payment method), and suggest a category from "
        f"this list: {json.dumps(list(categories))}.\n"
        "- If it is NOT (deposit, OTP, marketing, balance inquiry): set isExpense to false and "
        "leave every other field null."
    )


def build_expense_response_format(categories: Sequence[str]) -> dict[str, Any]:
    """Strict JSON-schema text format for the parse call."""

    return {
        "type": "json_schema",
        "name": "parsed_expense",
        "schema": {
            "type": "object",
            "properties": {
                "isExpense": {"type": "boolean"},
                "amount": {"type": ["number", "null"]},
                "vendor": {"type": ["string", "null"]},
                "description": {"type": ["string", "null"]},
                "category": {
                    "type": ["string", "null"],
                    "description": f"Must be one of: {', '.join(categories)}",
                },
            },
            "required": ["isExpense", "amount", "vendor", "description", "category"],
            "additionalProperties": False,
        },
        "strict": True,
    }


def match_category(suggested: Optional[str], allowed: Iterable[str]) -> Optional[str]:
    """Case-insensitive match of a suggested category, returning the allowed spelling."""

    if not suggested or not isinstance(suggested, str):
        return None
    key = suggested.strip().lower()
    return next((name for name in allowed if name.lower() == key), None)


def interpret_parse_payload(
    payload: Any, allowed_categories: Sequence[str]
) -> Optional[ParsedExpense]:
    """Turn the service's JSON into a candidate, or ``None`` for non-expenses.

    Unknown categories are discarded so the user (or the ``Other`` default)
    must supply one before commit.
    """

    if not isinstance(payload, Mapping) or payload.get("isExpense") is not True:
        return None
    amount = payload.get("amount")
    vendor = payload.get("vendor")
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not isinstance(vendor, str):
        return None
    description = payload.get("description")
    return ParsedExpense(
        amount=float(amount),
        vendor=vendor,
        category=match_category(payload.get("category"), allowed_categories),
        description=description if isinstance(description, str) and description else None,
    )


def parse_expense_text(
    text: str,
    allowed_categories: Optional[Sequence[str]] = None,
    *,
    config: Optional[BaseConfig] = None,
    client: Any = None,
) -> AssistantResult[ParsedExpense]:
    """Extract an expense candidate from pasted notification text."""

    cleaned = sanitize_sms_text(text)
    if not cleaned:
        return AssistantResult(None, "Please paste your SMS content first.")

    cfg = config or BaseConfig()
    client = client or _create_client(cfg)
    if client is None:
        return AssistantResult(None, NOT_CONFIGURED)

    categories = _categories_or_defaults(allowed_categories)
    try:
        resp = client.responses.create(
            model=cfg.AI_MODEL,
            instructions=build_parse_instructions(categories),
            input=f'Text to analyze: "{cleaned}"',
            text={"format": build_expense_response_format(categories)},
        )
        payload = json.loads(_extract_output_text(resp))
    except Exception as exc:  # noqa: BLE001 - service boundary reports instead of raising
        logger.warning("Expense parsing failed", exc_info=True, extra={"reason": str(exc)})
        return AssistantResult(None, "An error occurred while parsing. Please try again.")

    parsed = interpret_parse_payload(payload, categories)
    if parsed is None:
        return AssistantResult(None, "Couldn't identify an expense from the text. Please enter manually.")
    logger.info("Expense parsed from text", extra={"vendor": parsed.vendor, "category": parsed.category})
    return AssistantResult(parsed)


# ---------------------------------------------------------------------------
# Report generation
# ---------------------------------------------------------------------------


def serialize_expenses_for_report(expenses: Iterable[Expense]) -> str:
    """Only amount, vendor, category and date are shared with the service."""

    rows = [
        {"amount": e.amount, "vendor": e.vendor, "category": e.category, "date": e.date}
        for e in expenses
    ]
    return json.dumps(rows, indent=2, ensure_ascii=False)


def build_report_instructions(currency_symbol: str, period_label: str, categories: Sequence[str]) -> str:
    return (
        "You are a friendly financial assistant. Based on the provided expense data for "
        f"{period_label}, write a concise analysis with practical, actionable tips. "
        f"The currency is {currency_symbol}.\n"
        f"The user's expense categories are {json.dumps(list(categories))}; use them to tailor "
        "your suggestions.\n"
        "Respond ONLY with: 1) a brief, encouraging summary of the period's spending patterns; "
        "2) one or two actionable suggestions.\n"
        "Do NOT include a per-category breakdown, do NOT use Markdown, and write plain-text "
        "paragraphs separated by blank lines."
    )


def generate_report_text(
    expenses: Sequence[Expense],
    currency_symbol: str,
    period_label: str,
    allowed_categories: Optional[Sequence[str]] = None,
    *,
    config: Optional[BaseConfig] = None,
    client: Any = None,
) -> AssistantResult[str]:
    """Ask the service for a prose summary of a period's spending."""

    cfg = config or BaseConfig()
    client = client or _create_client(cfg)
    if client is None:
        return AssistantResult(None, NOT_CONFIGURED)

    categories = _categories_or_defaults(allowed_categories)
    try:
        resp = client.responses.create(
            model=cfg.AI_MODEL,
            instructions=build_report_instructions(currency_symbol, period_label, categories),
            input=f"Here are the expenses for the period:\n{serialize_expenses_for_report(expenses)}",
        )
        text = _extract_output_text(resp).strip()
    except Exception as exc:  # noqa: BLE001 - service boundary reports instead of raising
        logger.error("Report generation failed", exc_info=True, extra={"period": period_label})
        return AssistantResult(None, f"{REPORT_FAILURE_PREFIX}: {exc}")

    if text.startswith(REPORT_FAILURE_PREFIX):
        return AssistantResult(None, text)
    logger.info("Report text generated", extra={"period": period_label, "chars": len(text)})
    return AssistantResult(text)
