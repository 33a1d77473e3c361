"""Repository protocol definitions for domain layer."""

from .category import CategoryRepository
from .expense import ExpenseRepository
from .settings import SettingsRepository

__all__ = [
    "CategoryRepository",
    "ExpenseRepository",
    "SettingsRepository",
]
