"""Category registry: valid names, display colors, protection rules."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, Optional

from ..constants.categories import (
    DEFAULT_CATEGORIES,
    FALLBACK_COLOR,
    OTHER_CATEGORY,
    default_category_color,
    is_sentinel_category,
)
from ..errors import ImmutableEntryError, ValidationError
from ..models.category import CategoryDefinition


@dataclass(frozen=True, slots=True)
class CategoryCascade:
    """Reassignment the ledger must apply after a rename or delete."""

    old_name: str
    new_name: str


def default_categories() -> list[CategoryDefinition]:
    """Return a fresh copy of the built-in category set."""

    return [
        CategoryDefinition(name=name, color=default_category_color(name), is_default=True)
        for name in DEFAULT_CATEGORIES
    ]


def random_color(rng: Optional[random.Random] = None) -> str:
    """Pick a random ``#rrggbb`` color for a new category."""

    value = (rng or random).randint(0, 0xFFFFFF)
    return f"#{value:06x}"


def merge_legacy_categories(
    base: Iterable[CategoryDefinition], legacy: Iterable[dict]
) -> list[CategoryDefinition]:
    """Append legacy ``{name, color}`` entries that do not collide with ``base``.

    Collisions are detected case-insensitively; merged entries are never default.
    """

    merged = [c.copy_with() for c in base]
    seen = {c.name.lower() for c in merged}
    for raw in legacy:
        if not isinstance(raw, dict) or not str(raw.get("name") or "").strip():
            continue
        entry = CategoryDefinition.from_dict(raw, is_default=False)
        if not entry.color:
            entry.color = FALLBACK_COLOR
        key = entry.name.lower()
        if key in seen:
            continue
        seen.add(key)
        merged.append(entry)
    return merged


class CategoryRegistry:
    """In-memory registry of category definitions.

    Mutations validate first and raise before touching state. Renames and
    deletes return a :class:`CategoryCascade` describing the split
    reassignment that belongs to the same atomic operation.
    """

    def __init__(self, categories: Iterable[CategoryDefinition] = ()):
        self._entries: list[CategoryDefinition] = [c.copy_with() for c in categories]

    # -- read side -----------------------------------------------------

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

    def copy(self) -> "CategoryRegistry":
        return CategoryRegistry(self._entries)

    def entries(self) -> list[CategoryDefinition]:
        """Entries in stored order (detached copies)."""
        return [c.copy_with() for c in self._entries]

    def find(self, name: str) -> Optional[CategoryDefinition]:
        """Look up an entry by name, ignoring case and surrounding spaces."""
        key = (name or "").strip().lower()
        return next((c for c in self._entries if c.name.lower() == key), None)

    def contains(self, name: str) -> bool:
        return self.find(name) is not None

    def names(self) -> list[str]:
        """Alphabetical category names, as offered in pickers."""
        return sorted(c.name for c in self._entries)

    def colors(self) -> dict[str, str]:
        return {c.name: c.color for c in self._entries}

    def color_for(self, name: str) -> str:
        entry = self.find(name)
        return entry.color if entry else FALLBACK_COLOR

    def sorted_for_display(self) -> list[CategoryDefinition]:
        """Default categories first, then custom ones, alphabetical within each."""
        return sorted(
            (c.copy_with() for c in self._entries),
            key=lambda c: (not c.is_default, c.name.lower()),
        )

    def canonical_name(self, name: str) -> Optional[str]:
        """Return the stored spelling of ``name`` or ``None`` when unknown."""
        entry = self.find(name)
        return entry.name if entry else None

    # -- validation ----------------------------------------------------

    def _validate_name(self, name: str, *, original: Optional[str] = None) -> str:
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValidationError("Category name cannot be empty.", field="name")
        original_key = original.strip().lower() if original else None
        for entry in self._entries:
            key = entry.name.lower()
            if key == trimmed.lower() and key != original_key:
                raise ValidationError("This category name already exists.", field="name")
        return trimmed

    # -- mutations -----------------------------------------------------

    def add(self, name: str, color: Optional[str] = None) -> CategoryDefinition:
        """Append a custom (non-default) category."""
        trimmed = self._validate_name(name)
        entry = CategoryDefinition(name=trimmed, color=color or random_color(), is_default=False)
        self._entries.append(entry)
        return entry.copy_with()

    def rename(self, old_name: str, new_name: str, new_color: Optional[str] = None) -> CategoryCascade:
        """Rename (and optionally recolor) an entry; ``Other`` is immutable."""
        if is_sentinel_category(old_name):
            raise ImmutableEntryError(f'The "{OTHER_CATEGORY}" category cannot be renamed.')
        entry = self.find(old_name)
        if entry is None:
            raise ValidationError(f'Category "{old_name}" does not exist.', field="name")
        trimmed = self._validate_name(new_name, original=entry.name)
        previous = entry.name
        entry.name = trimmed
        if new_color:
            entry.color = new_color
        return CategoryCascade(old_name=previous, new_name=trimmed)

    def delete(self, name: str) -> CategoryCascade:
        """Remove a custom entry; its splits move to ``Other``."""
        if is_sentinel_category(name):
            raise ImmutableEntryError(f'The "{OTHER_CATEGORY}" category cannot be deleted.')
        entry = self.find(name)
        if entry is None:
            raise ValidationError(f'Category "{name}" does not exist.', field="name")
        if entry.is_default:
            raise ImmutableEntryError(f'Default category "{entry.name}" cannot be deleted.')
        self._entries = [c for c in self._entries if c is not entry]
        return CategoryCascade(old_name=entry.name, new_name=OTHER_CATEGORY)

    def ensure_sentinel(self) -> bool:
        """Re-add ``Other`` if missing (restored data may lack it). Returns True on change."""
        if self.contains(OTHER_CATEGORY):
            return False
        self._entries.append(
            CategoryDefinition(
                name=OTHER_CATEGORY, color=default_category_color(OTHER_CATEGORY), is_default=True
            )
        )
        return True
