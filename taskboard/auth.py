from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from taskboard.observability import get_json_logger
from taskboard.store import RowStore, StoreError


class AuthContext(Protocol):
    """Supplies the identity that owns newly created tasks."""

    def current_user_id(self) -> str | None:
        """Return the signed-in user's id, or None for anonymous use."""


@dataclass(slots=True)
class StaticAuthContext(AuthContext):
    user_id: str | None = None

    def current_user_id(self) -> str | None:
        return self.user_id or None


class StoreAuthContext(AuthContext):
    """Reads the identity from the row store's own session.

    A failed lookup degrades to an anonymous owner instead of failing the
    create that asked for it.
    """

    def __init__(self, store: RowStore) -> None:
        self._store = store
        self._logger = get_json_logger("taskboard.auth")

    def current_user_id(self) -> str | None:
        try:
            return self._store.current_user_id()
        except StoreError as exc:
            self._logger.warning(
                "user lookup failed",
                extra={"event": "auth_lookup_failed", "metadata": {"error": exc.message[:200]}},
            )
            return None


__all__ = ["AuthContext", "StaticAuthContext", "StoreAuthContext"]
