"""Display currency selection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class Currency:
    """ISO code plus the human name and symbol shown next to amounts."""

    code: str
    name: str
    symbol: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "name": self.name, "symbol": self.symbol}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Currency":
        code = str(payload["code"])
        return cls(
            code=code,
            name=str(payload.get("name") or code),
            symbol=str(payload.get("symbol") or code),
        )
