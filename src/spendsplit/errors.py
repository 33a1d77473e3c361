"""Error taxonomy shared by the ledger, registry and backup services."""

from __future__ import annotations

from typing import Optional


class ValidationError(ValueError):
    """User input violates a ledger or registry invariant.

    ``field`` names the offending input (``amount``, ``vendor``, ``splits``,
    ``date``, ``category`` or ``name``) so callers can show the message inline.
    """

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ImmutableEntryError(ValueError):
    """Attempt to rename or delete a protected category."""


class FormatError(ValueError):
    """A backup document is malformed and cannot be restored."""


__all__ = ["FormatError", "ImmutableEntryError", "ValidationError"]
