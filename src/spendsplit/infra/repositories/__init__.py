"""Concrete repository implementations using SQLModel."""

from .category import SQLModelCategoryRepository
from .expense import SQLModelExpenseRepository
from .settings import SQLModelSettingsRepository

__all__ = [
    "SQLModelCategoryRepository",
    "SQLModelExpenseRepository",
    "SQLModelSettingsRepository",
]
