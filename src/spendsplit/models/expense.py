"""SQLModel definition for ledger splits."""

from __future__ import annotations

from typing import Any, ClassVar, Mapping, Optional

from sqlmodel import Field, SQLModel


class Expense(SQLModel, table=True):
    """One stored expense record: a single category's share of a transaction.

    Every split of a transaction shares ``transaction_id``, ``vendor``, ``date``
    and ``notes``; amounts are independent.
    """

    __tablename__: ClassVar[str] = "expense"

    id: str = Field(primary_key=True, max_length=64)
    transaction_id: str = Field(index=True, nullable=False, max_length=64)
    amount: float = Field(nullable=False, description="Positive magnitude, currency-agnostic")
    vendor: str = Field(nullable=False, max_length=255)
    category: str = Field(index=True, nullable=False, max_length=64)
    date: str = Field(index=True, nullable=False, max_length=10, description="YYYY-MM-DD, UTC")
    notes: Optional[str] = Field(default=None)
    # Ledger order at the time of the last save.
    position: int = Field(default=0, nullable=False)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON record shape (camelCase keys)."""

        payload: dict[str, Any] = {
            "id": self.id,
            "transactionId": self.transaction_id,
            "amount": self.amount,
            "vendor": self.vendor,
            "category": self.category,
            "date": self.date,
        }
        if self.notes is not None:
            payload["notes"] = self.notes
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Expense":
        """Build a split from its JSON record; a missing transactionId stays empty."""

        notes = payload.get("notes")
        return cls(
            id=str(payload["id"]),
            transaction_id=str(payload.get("transactionId") or ""),
            amount=float(payload["amount"]),
            vendor=str(payload.get("vendor") or ""),
            category=str(payload.get("category") or ""),
            date=str(payload.get("date") or ""),
            notes=None if notes is None else str(notes),
        )

    def copy_with(self, **changes: Any) -> "Expense":
        """Return a detached copy with ``changes`` applied."""

        values = {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "amount": self.amount,
            "vendor": self.vendor,
            "category": self.category,
            "date": self.date,
            "notes": self.notes,
            "position": self.position,
        }
        values.update(changes)
        return Expense(**values)
