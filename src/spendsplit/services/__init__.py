"""Service module exports."""

from . import (
    aggregation,
    assistant,
    backup,
    categories,
    ledger_service,
    reports,
    text_utils,
    transactions,
)

__all__ = [
    "aggregation",
    "assistant",
    "backup",
    "categories",
    "ledger_service",
    "reports",
    "text_utils",
    "transactions",
]
