"""SQLModel implementation of the category registry store."""

from __future__ import annotations

from typing import Iterable, Optional

from sqlmodel import Session, select

from ...models.category import CategoryDefinition
from ._scope import SessionFactory, use_session


class SQLModelCategoryRepository:
    """SQLModel-based category repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def list_all(self, *, session: Optional[Session] = None) -> list[CategoryDefinition]:
        """List all categories in registry order."""
        with use_session(self.session_factory, session) as active:
            statement = select(CategoryDefinition).order_by(CategoryDefinition.position)  # type: ignore[arg-type]
            return [row.copy_with() for row in active.exec(statement).all()]

    def replace_all(
        self, categories: Iterable[CategoryDefinition], *, session: Optional[Session] = None
    ) -> int:
        """Overwrite the stored registry with ``categories``."""
        with use_session(self.session_factory, session) as active:
            for existing in active.exec(select(CategoryDefinition)).all():
                active.delete(existing)
            active.flush()
            count = 0
            for position, category in enumerate(categories):
                active.add(category.copy_with(position=position))
                count += 1
            active.flush()
            return count
