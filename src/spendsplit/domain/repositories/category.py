"""Category repository protocol."""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from ...models.category import CategoryDefinition


class CategoryRepository(Protocol):
    """Persistence for the category registry record."""

    def list_all(self, *, session: Any = None) -> list[CategoryDefinition]:
        """List all categories in registry order."""
        ...

    def replace_all(self, categories: Iterable[CategoryDefinition], *, session: Any = None) -> int:
        """Overwrite the stored registry."""
        ...
