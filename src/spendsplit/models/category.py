"""Expense category definitions."""

from __future__ import annotations

from typing import Any, ClassVar, Mapping

from sqlmodel import Field, SQLModel

from ..constants.categories import FALLBACK_COLOR


class CategoryDefinition(SQLModel, table=True):
    """A named category with its display color.

    Names are unique case-insensitively; ``is_default`` marks built-in entries.
    """

    __tablename__: ClassVar[str] = "category_definition"

    name: str = Field(primary_key=True, max_length=64)
    color: str = Field(nullable=False, max_length=16)
    is_default: bool = Field(default=False, nullable=False)
    position: int = Field(default=0, nullable=False)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "color": self.color, "isDefault": self.is_default}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], *, is_default: bool | None = None) -> "CategoryDefinition":
        flag = payload.get("isDefault", False) if is_default is None else is_default
        return cls(
            name=str(payload["name"]).strip(),
            color=str(payload.get("color") or FALLBACK_COLOR),
            is_default=bool(flag),
        )

    def copy_with(self, **changes: Any) -> "CategoryDefinition":
        values = {
            "name": self.name,
            "color": self.color,
            "is_default": self.is_default,
            "position": self.position,
        }
        values.update(changes)
        return CategoryDefinition(**values)
