from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Literal

from taskboard.store import RedisRowStore, RestRowStore, RowStore

Backend = Literal["redis", "rest"]


@dataclass(slots=True)
class TaskboardConfig:
    backend: Backend
    table: str
    redis_url: str
    key_prefix: str
    rest_url: str | None
    api_key: str | None
    access_token: str | None
    user_id: str | None
    http_timeout: float


def _read_backend(raw: str | None) -> Backend:
    value = (raw or "").strip().lower() or "redis"
    if value not in ("redis", "rest"):
        raise ValueError(f"TASKBOARD_BACKEND must be 'redis' or 'rest', got {raw!r}")
    return "rest" if value == "rest" else "redis"


def _read_timeout(raw: str | None, default: float = 10.0) -> float:
    value = (raw or "").strip()
    try:
        timeout = float(value) if value else default
    except ValueError:
        return default
    return timeout if timeout > 0 else default


def _optional(e: dict[str, Any], key: str) -> str | None:
    value = (e.get(key) or "").strip()
    return value or None


def load_config(env: dict[str, str] | None = None) -> TaskboardConfig:
    e: dict[str, Any] = dict(os.environ)
    if env:
        e.update(env)
    return TaskboardConfig(
        backend=_read_backend(e.get("TASKBOARD_BACKEND")),
        table=(e.get("TASKBOARD_TABLE") or "").strip() or "tasks",
        redis_url=e.get("REDIS_URL", "redis://localhost:6379/0"),
        key_prefix=(e.get("TASKBOARD_KEY_PREFIX") or "").strip() or "taskboard",
        rest_url=_optional(e, "TASKBOARD_REST_URL"),
        api_key=_optional(e, "TASKBOARD_API_KEY"),
        access_token=_optional(e, "TASKBOARD_ACCESS_TOKEN"),
        user_id=_optional(e, "TASKBOARD_USER_ID"),
        http_timeout=_read_timeout(e.get("TASKBOARD_HTTP_TIMEOUT")),
    )


def build_store(cfg: TaskboardConfig) -> RowStore:
    if cfg.backend == "rest":
        if not cfg.rest_url or not cfg.api_key:
            raise ValueError("TASKBOARD_REST_URL and TASKBOARD_API_KEY are required for rest")
        return RestRowStore(
            base_url=cfg.rest_url,
            api_key=cfg.api_key,
            access_token=cfg.access_token,
            timeout=cfg.http_timeout,
        )
    return RedisRowStore(url=cfg.redis_url, key_prefix=cfg.key_prefix, user_id=cfg.user_id)


__all__ = ["TaskboardConfig", "load_config", "build_store"]
