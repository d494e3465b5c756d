from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Mapping
from typing import Any

from taskboard.models import as_utc

from .interface import Row


def matches_filter(row: Mapping[str, Any], filter: Mapping[str, Any] | None) -> bool:
    """Return True when every filter column equals the row's value."""
    if not filter:
        return True
    return all(row.get(col) == value for col, value in filter.items())


def _as_timestamp(value: Any) -> dt.datetime | None:
    if isinstance(value, dt.datetime):
        return as_utc(value)
    if not isinstance(value, str):
        return None
    try:
        return as_utc(dt.datetime.fromisoformat(value))
    except ValueError:
        return None


def order_rows(rows: Iterable[Row], order_by: str, ascending: bool) -> list[Row]:
    """Order rows the way PostgreSQL does by default.

    Nulls sort last when ascending and first when descending. The sort is
    stable, so ties keep their incoming order. Timestamp strings compare as
    instants so that mixed offsets order correctly.
    """
    items = list(rows)
    present = [r for r in items if r.get(order_by) is not None]
    missing = [r for r in items if r.get(order_by) is None]
    stamps = [_as_timestamp(r[order_by]) for r in present]
    if present and all(s is not None for s in stamps):
        keyed = sorted(zip(stamps, present), key=lambda p: p[0], reverse=not ascending)
        present = [r for _, r in keyed]
    else:
        present.sort(key=lambda r: r[order_by], reverse=not ascending)
    if ascending:
        return present + missing
    return missing + present


__all__ = ["matches_filter", "order_rows"]
