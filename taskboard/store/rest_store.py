from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from taskboard.observability import get_json_logger, get_metrics

from .interface import Row, RowStore, StoreError

# PostgREST returns a bare object instead of a one-element array with this media type
_SINGLE_OBJECT = "application/vnd.pgrst.object+json"


def _error_message(resp: httpx.Response) -> str:
    """Pull the human-readable reason out of a PostgREST/GoTrue error body."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    text = resp.text.strip()
    return text or f"HTTP {resp.status_code} {resp.reason_phrase}".strip()


class RestRowStore(RowStore):
    """Row store speaking the PostgREST dialect used by hosted Postgres services.

    - rows live under `{base_url}/rest/v1/{table}`
    - identity comes from `{base_url}/auth/v1/user` using the access token
    - `apikey` is sent on every request; `Authorization` carries the access
      token when present, the api key otherwise
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        access_token: str | None = None,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._access_token = access_token or None
        bearer = self._access_token or api_key
        headers = {"apikey": api_key, "Authorization": f"Bearer {bearer}"}
        if client is not None:
            client.base_url = base_url.rstrip("/")
            client.headers.update(headers)
            self._client = client
        else:
            self._client = httpx.Client(
                base_url=base_url.rstrip("/"), headers=headers, timeout=timeout
            )
        self._logger = get_json_logger("taskboard.store")
        self._metrics = get_metrics()

    def close(self) -> None:
        self._client.close()

    def _request(
        self,
        op: str,
        method: str,
        url: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        self._metrics.increment("store_calls", {"op": op, "backend": "rest"})
        try:
            resp = self._client.request(method, url, params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise self._fail(op, str(exc) or exc.__class__.__name__) from exc
        if resp.status_code >= 400:
            raise self._fail(op, _error_message(resp), status_code=resp.status_code)
        return resp

    def _fail(self, op: str, message: str, *, status_code: int | None = None) -> StoreError:
        self._logger.error(
            "store error",
            extra={
                "event": "store_error",
                "op": op,
                "status_code": status_code,
                "metadata": {"error": message[:200], "backend": "rest"},
            },
        )
        self._metrics.increment("store_errors", {"op": op, "backend": "rest"})
        return StoreError(message, op=op)

    def _json(self, op: str, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise self._fail(op, "invalid JSON response", status_code=resp.status_code) from exc

    @staticmethod
    def _table_url(table: str) -> str:
        return f"/rest/v1/{table}"

    @staticmethod
    def _eq(value: Any) -> str:
        return f"eq.{value}"

    def list(
        self,
        table: str,
        order_by: str,
        ascending: bool,
        filter: Mapping[str, Any] | None = None,
    ) -> list[Row]:
        params: dict[str, str] = {
            "select": "*",
            "order": f"{order_by}.{'asc' if ascending else 'desc'}",
        }
        for col, value in (filter or {}).items():
            params[col] = self._eq(value)
        resp = self._request("list", "GET", self._table_url(table), params=params)
        data = self._json("list", resp)
        if data is None:
            return []
        if not isinstance(data, list):
            raise self._fail("list", "unexpected response shape for list")
        return data

    def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        resp = self._request(
            "insert",
            "POST",
            self._table_url(table),
            params={"select": "*"},
            json=[dict(row)],
            headers={"Prefer": "return=representation", "Accept": _SINGLE_OBJECT},
        )
        data = self._json("insert", resp)
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            raise self._fail("insert", "insert returned no row")
        return data

    def update(self, table: str, id: int, patch: Mapping[str, Any]) -> None:
        self._request(
            "update",
            "PATCH",
            self._table_url(table),
            params={"id": self._eq(id)},
            json=dict(patch),
            headers={"Prefer": "return=minimal"},
        )

    def delete(self, table: str, id: int) -> None:
        self._request(
            "delete",
            "DELETE",
            self._table_url(table),
            params={"id": self._eq(id)},
            headers={"Prefer": "return=minimal"},
        )

    def current_user_id(self) -> str | None:
        """Return the signed-in user's id, or None for anonymous sessions."""
        if not self._access_token:
            return None
        try:
            resp = self._client.get("/auth/v1/user")
        except httpx.HTTPError as exc:
            raise self._fail("current_user", str(exc) or exc.__class__.__name__) from exc
        if resp.status_code in (401, 403):
            return None
        if resp.status_code >= 400:
            raise self._fail("current_user", _error_message(resp), status_code=resp.status_code)
        body = self._json("current_user", resp)
        user_id = body.get("id") if isinstance(body, dict) else None
        return str(user_id) if user_id else None

    def ping(self) -> bool:
        self._request("ping", "GET", "/rest/v1/", headers={"Accept": "application/openapi+json"})
        return True


__all__ = ["RestRowStore"]
