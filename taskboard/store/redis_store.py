from __future__ import annotations

import datetime as _dt
import json
from collections.abc import Mapping
from typing import Any, cast

import redis

from taskboard.observability import get_json_logger, get_metrics

from .interface import Row, RowStore, StoreError
from .utils import matches_filter, order_rows


class RedisRowStore(RowStore):
    """Redis-backed row store.

    Data structures:
    - String per row: key `{prefix}:{table}:row:{id}` holding the row JSON
    - Sorted set per table: key `{prefix}:{table}:ids` with score=id, member=id
    - Counter per table: key `{prefix}:{table}:seq`, INCR issues new ids

    Filtering and ordering happen client-side after a single MGET, which is
    fine for the small per-user lists this store serves.
    """

    def __init__(
        self,
        *,
        url: str = "redis://localhost:6379/0",
        key_prefix: str = "taskboard",
        user_id: str | None = None,
        client: Any | None = None,
    ) -> None:
        if client is not None:
            self._redis = client
        else:
            # decode_responses=True returns str everywhere for easier JSON handling
            self._redis = redis.Redis.from_url(url, decode_responses=True)
        self._prefix = key_prefix.rstrip(":")
        self._user_id = user_id or None
        self._logger = get_json_logger("taskboard.store")
        self._metrics = get_metrics()

    # key helpers
    def _row_key(self, table: str, row_id: int) -> str:
        return f"{self._prefix}:{table}:row:{row_id}"

    def _ids_key(self, table: str) -> str:
        return f"{self._prefix}:{table}:ids"

    def _seq_key(self, table: str) -> str:
        return f"{self._prefix}:{table}:seq"

    def _fail(self, op: str, table: str, message: str) -> StoreError:
        self._logger.error(
            "store error",
            extra={
                "event": "store_error",
                "op": op,
                "table": table,
                "metadata": {"error": message[:200], "backend": "redis"},
            },
        )
        self._metrics.increment("store_errors", {"op": op, "backend": "redis"})
        return StoreError(message or f"redis {op} failed", op=op)

    def _count(self, op: str) -> None:
        self._metrics.increment("store_calls", {"op": op, "backend": "redis"})

    def list(
        self,
        table: str,
        order_by: str,
        ascending: bool,
        filter: Mapping[str, Any] | None = None,
    ) -> list[Row]:
        self._count("list")
        try:
            ids = cast(list[str], self._redis.zrange(self._ids_key(table), 0, -1))
            if not ids:
                return []
            raw_rows = cast(
                list[str | None],
                self._redis.mget([self._row_key(table, int(i)) for i in ids]),
            )
        except redis.exceptions.RedisError as exc:
            raise self._fail("list", table, str(exc)) from exc
        rows: list[Row] = []
        for raw in raw_rows:
            if raw is None:
                # index entry outlived its row; skip rather than fail the read
                continue
            try:
                row = json.loads(raw)
            except ValueError:
                row = None
            if not isinstance(row, dict):
                raise self._fail("list", table, "corrupt row payload")
            if matches_filter(row, filter):
                rows.append(row)
        return order_rows(rows, order_by, ascending)

    def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        self._count("insert")
        try:
            row_id = int(self._redis.incr(self._seq_key(table)))
            stored: Row = dict(row)
            stored["id"] = row_id
            stored["created_at"] = _dt.datetime.now(_dt.UTC).isoformat()
            payload = json.dumps(stored, separators=(",", ":"))
            p = self._redis.pipeline()
            p.set(self._row_key(table, row_id), payload)
            p.zadd(self._ids_key(table), {str(row_id): row_id})
            p.execute()
        except redis.exceptions.RedisError as exc:
            raise self._fail("insert", table, str(exc)) from exc
        self._logger.debug(
            "row inserted",
            extra={"event": "store_insert", "op": "insert", "table": table, "task_id": row_id},
        )
        return stored

    def update(self, table: str, id: int, patch: Mapping[str, Any]) -> None:
        self._count("update")
        key = self._row_key(table, id)
        try:
            raw = cast(str | None, self._redis.get(key))
            if raw is None:
                # matches a filtered UPDATE that hits no rows
                return
            current = json.loads(raw)
            current.update(patch)
            current["id"] = id
            self._redis.set(key, json.dumps(current, separators=(",", ":")))
        except redis.exceptions.RedisError as exc:
            raise self._fail("update", table, str(exc)) from exc
        except ValueError as exc:
            raise self._fail("update", table, "corrupt row payload") from exc

    def delete(self, table: str, id: int) -> None:
        self._count("delete")
        try:
            p = self._redis.pipeline()
            p.delete(self._row_key(table, id))
            p.zrem(self._ids_key(table), str(id))
            p.execute()
        except redis.exceptions.RedisError as exc:
            raise self._fail("delete", table, str(exc)) from exc

    def current_user_id(self) -> str | None:
        return self._user_id

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except redis.exceptions.RedisError as exc:
            raise self._fail("ping", "-", str(exc)) from exc

    def close(self) -> None:
        self._redis.close()


__all__ = ["RedisRowStore"]
