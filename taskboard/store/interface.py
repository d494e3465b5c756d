from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

Row = dict[str, Any]


class StoreError(Exception):
    """Raised for any failed remote store call.

    `message` is the human-readable reason surfaced to the user; `op` names
    the store operation that failed.
    """

    def __init__(self, message: str, *, op: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.op = op


class RowStore(Protocol):
    """Generic row-oriented store client.

    Keep this tiny and stable so backends can be swapped without touching the
    controller. Every failure must surface as `StoreError`.
    """

    def list(
        self,
        table: str,
        order_by: str,
        ascending: bool,
        filter: Mapping[str, Any] | None = None,
    ) -> list[Row]:
        """Return all rows matching the equality filter, ordered by `order_by`."""

    def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        """Insert one row and return it as stored (with `id` and `created_at`)."""

    def update(self, table: str, id: int, patch: Mapping[str, Any]) -> None:
        """Apply `patch` to the row with `id`."""

    def delete(self, table: str, id: int) -> None:
        """Remove the row with `id`."""

    def current_user_id(self) -> str | None:
        """Return the identity the store authenticates as, if any."""


__all__ = ["Row", "RowStore", "StoreError"]
