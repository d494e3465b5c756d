from __future__ import annotations

from .interface import Row, RowStore, StoreError
from .redis_store import RedisRowStore
from .rest_store import RestRowStore

__all__ = [
    "Row",
    "RowStore",
    "StoreError",
    "RedisRowStore",
    "RestRowStore",
]
