"""SQLModel table exports."""

from .category import CategoryDefinition
from .currency import Currency
from .expense import Expense
from .settings import AppSetting
from .transaction import Transaction

__all__ = [
    "AppSetting",
    "CategoryDefinition",
    "Currency",
    "Expense",
    "Transaction",
]
