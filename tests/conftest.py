from __future__ import annotations

import datetime as _dt
import os
import uuid
from collections.abc import Generator

import pytest

from taskboard.observability import reset_metrics


def _redis_ping(url: str) -> bool:
    try:
        import redis

        r = redis.Redis.from_url(url)
        return bool(r.ping())
    except Exception:
        return False


@pytest.fixture(scope="session")
def redis_url() -> str:
    """Provide a reachable Redis URL or skip.

    Priority:
    1) REDIS_URL env if reachable
    2) localhost:6379
    """
    env_url = os.getenv("REDIS_URL")
    if env_url and _redis_ping(env_url):
        return env_url
    local_url = "redis://localhost:6379/0"
    if _redis_ping(local_url):
        return local_url
    pytest.skip("Redis not available; set REDIS_URL or start local Redis")


@pytest.fixture()
def unique_prefix() -> str:
    return f"test:taskboard:{uuid.uuid4()}"


@pytest.fixture(autouse=True)
def _fresh_metrics() -> Generator[None, None, None]:
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture()
def now() -> _dt.datetime:
    return _dt.datetime(2026, 10, 19, 12, 0, tzinfo=_dt.UTC)

