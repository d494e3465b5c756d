from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from taskboard.controller import TaskListController
from taskboard.observability import get_metrics
from taskboard.store import RestRowStore, StoreError
from tests.helpers.store import make_row

BASE_URL = "https://db.example.test"

Handler = Callable[[httpx.Request], httpx.Response]


def _store(handler: Handler, *, access_token: str | None = None) -> RestRowStore:
    client = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return RestRowStore(
        base_url=BASE_URL, api_key="anon-key", access_token=access_token, client=client
    )


def test_list_builds_postgrest_query() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[make_row(1, "a", status="completed")])

    rows = _store(handler).list("tasks", "due_date", True, {"status": "completed"})

    assert rows[0]["title"] == "a"
    req = seen[0]
    assert req.method == "GET"
    assert req.url.path == "/rest/v1/tasks"
    assert req.url.params["select"] == "*"
    assert req.url.params["order"] == "due_date.asc"
    assert req.url.params["status"] == "eq.completed"
    assert req.headers["apikey"] == "anon-key"
    assert req.headers["authorization"] == "Bearer anon-key"
    assert get_metrics().value("store_calls", {"op": "list", "backend": "rest"}) == 1


def test_list_descending_without_filter() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    assert _store(handler).list("tasks", "created_at", False) == []
    assert seen[0].url.params["order"] == "created_at.desc"
    assert "status" not in seen[0].url.params


def test_insert_returns_single_representation() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        body = json.loads(request.content)
        return httpx.Response(201, json={**make_row(42, body[0]["title"]), "user_id": "u-9"})

    row = _store(handler, access_token="jwt").insert(
        "tasks", {"title": "New", "status": "pending", "due_date": None, "user_id": "u-9"}
    )

    assert row["id"] == 42
    assert row["user_id"] == "u-9"
    req = seen[0]
    assert req.method == "POST"
    assert req.headers["prefer"] == "return=representation"
    assert req.headers["accept"] == "application/vnd.pgrst.object+json"
    assert req.headers["authorization"] == "Bearer jwt"
    assert json.loads(req.content) == [
        {"title": "New", "status": "pending", "due_date": None, "user_id": "u-9"}
    ]


def test_insert_accepts_array_representation() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json=[make_row(5, "x")])

    assert _store(handler).insert("tasks", {"title": "x"})["id"] == 5


def test_insert_empty_representation_is_an_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json=[])

    with pytest.raises(StoreError) as ei:
        _store(handler).insert("tasks", {"title": "x"})
    assert ei.value.op == "insert"


def test_update_and_delete_target_single_id() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    store = _store(handler)
    store.update("tasks", 7, {"status": "completed"})
    store.delete("tasks", 7)

    patch, delete = seen
    assert patch.method == "PATCH"
    assert patch.url.params["id"] == "eq.7"
    assert json.loads(patch.content) == {"status": "completed"}
    assert delete.method == "DELETE"
    assert delete.url.params["id"] == "eq.7"


def test_error_body_message_becomes_store_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            403,
            json={"code": "42501", "message": 'permission denied for table "tasks"'},
        )

    with pytest.raises(StoreError) as ei:
        _store(handler).delete("tasks", 1)
    assert ei.value.message == 'permission denied for table "tasks"'
    assert ei.value.op == "delete"
    assert get_metrics().value("store_errors", {"op": "delete", "backend": "rest"}) == 1


def test_non_json_error_falls_back_to_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    with pytest.raises(StoreError) as ei:
        _store(handler).list("tasks", "created_at", False)
    assert ei.value.message == "Bad Gateway"


def test_transport_error_becomes_store_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StoreError) as ei:
        _store(handler).update("tasks", 1, {"status": "pending"})
    assert "connection refused" in ei.value.message


def test_current_user_requires_access_token() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"id": "u-1"})

    assert _store(handler).current_user_id() is None
    assert calls == []
    assert _store(handler, access_token="jwt").current_user_id() == "u-1"
    assert calls[0].url.path == "/auth/v1/user"


def test_current_user_unauthorized_is_anonymous() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"msg": "invalid JWT"})

    assert _store(handler, access_token="expired").current_user_id() is None


def test_current_user_server_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"msg": "auth down"})

    with pytest.raises(StoreError) as ei:
        _store(handler, access_token="jwt").current_user_id()
    assert ei.value.message == "auth down"


def test_non_json_body_becomes_store_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>proxy login</html>")

    store = _store(handler, access_token="jwt")
    for call in (
        lambda: store.list("tasks", "created_at", False),
        lambda: store.insert("tasks", {"title": "x"}),
        store.current_user_id,
    ):
        with pytest.raises(StoreError) as ei:
            call()
        assert ei.value.message == "invalid JSON response"
    assert get_metrics().value("store_errors", {"op": "list", "backend": "rest"}) == 1


def test_controller_reports_non_json_reload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>proxy login</html>")

    controller = TaskListController(_store(handler))
    controller.reload()

    assert controller.error == "invalid JSON response"
    assert controller.tasks == []
    assert controller.loading is False


def test_injected_client_gets_base_url() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    client = httpx.Client(transport=httpx.MockTransport(handler))
    store = RestRowStore(base_url=f"{BASE_URL}/", api_key="anon-key", client=client)
    store.list("tasks", "created_at", False)

    assert str(seen[0].url).startswith(f"{BASE_URL}/rest/v1/tasks?")
