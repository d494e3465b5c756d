from __future__ import annotations

import datetime as _dt
from collections.abc import Mapping
from typing import Any

from taskboard.store import Row, RowStore, StoreError
from taskboard.store.utils import matches_filter, order_rows


class InMemoryRowStore(RowStore):
    """Row store kept in a dict, with per-operation failure injection.

    `fail[op] = "reason"` makes the next calls to `op` raise StoreError.
    `calls` records (op, args) for every call that reached the store.
    """

    def __init__(self, rows: list[Row] | None = None, user_id: str | None = None) -> None:
        self._tables: dict[str, dict[int, Row]] = {}
        self._next_id = 1
        self._user_id = user_id
        self.fail: dict[str, str] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        for row in rows or []:
            self.seed("tasks", row)

    def seed(self, table: str, row: Mapping[str, Any]) -> Row:
        stored = dict(row)
        stored.setdefault("id", self._next_id)
        stored.setdefault("created_at", _dt.datetime.now(_dt.UTC).isoformat())
        stored.setdefault("status", "pending")
        stored.setdefault("due_date", None)
        stored.setdefault("user_id", None)
        self._next_id = max(self._next_id, int(stored["id"])) + 1
        self._tables.setdefault(table, {})[int(stored["id"])] = stored
        return dict(stored)

    def _check(self, op: str, *args: Any) -> None:
        self.calls.append((op, args))
        reason = self.fail.get(op)
        if reason is not None:
            raise StoreError(reason, op=op)

    def list(
        self,
        table: str,
        order_by: str,
        ascending: bool,
        filter: Mapping[str, Any] | None = None,
    ) -> list[Row]:
        self._check("list", table, order_by, ascending, dict(filter or {}))
        rows = [dict(r) for r in self._tables.get(table, {}).values() if matches_filter(r, filter)]
        return order_rows(rows, order_by, ascending)

    def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        self._check("insert", table, dict(row))
        stored = dict(row)
        stored.pop("id", None)
        stored.pop("created_at", None)
        return self.seed(table, stored)

    def update(self, table: str, id: int, patch: Mapping[str, Any]) -> None:
        self._check("update", table, id, dict(patch))
        current = self._tables.get(table, {}).get(id)
        if current is not None:
            current.update(patch)

    def delete(self, table: str, id: int) -> None:
        self._check("delete", table, id)
        self._tables.get(table, {}).pop(id, None)

    def current_user_id(self) -> str | None:
        self._check("current_user_id")
        return self._user_id

    def ops(self) -> list[str]:
        return [op for op, _ in self.calls]


def make_row(id: int, title: str, **fields: Any) -> Row:
    """Build a stored task row; `created_at` grows with `id`."""
    row: Row = {
        "id": id,
        "title": title,
        "status": "pending",
        "due_date": None,
        "created_at": f"2026-10-{id % 28 + 1:02d}T09:00:00+00:00",
        "user_id": None,
    }
    row.update(fields)
    return row


__all__ = ["InMemoryRowStore", "make_row"]
