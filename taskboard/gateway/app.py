from __future__ import annotations

import asyncio
import datetime as _dt
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel

from taskboard.auth import AuthContext, StoreAuthContext
from taskboard.controller import TaskListController
from taskboard.models import STATUS_LABELS, StatusFilter, TaskStatus
from taskboard.observability import (
    configure_uvicorn_logging,
    get_json_logger,
    get_metrics,
    use_session_context,
)
from taskboard.store import StoreError

T = TypeVar("T")


class CreateTaskRequest(BaseModel):
    """Omitted fields fall back to the controller's draft inputs."""

    title: str | None = None
    due_date: str | None = None


class StatusRequest(BaseModel):
    status: TaskStatus


class ViewRequest(BaseModel):
    search_query: str | None = None
    status_filter: StatusFilter | None = None
    page: int | None = None


class DraftRequest(BaseModel):
    title: str | None = None
    due_date: str | None = None


def render_state(
    controller: TaskListController, now: _dt.datetime | None = None
) -> dict[str, Any]:
    """Serialize the controller state plus its derived view for the UI layer."""
    view = controller.view(now)
    return {
        "loading": controller.loading,
        "error": controller.error,
        "controls": {
            "search_query": controller.search_query,
            "status_filter": controller.status_filter,
            "sort_field": controller.sort_field,
            "sort_direction": controller.sort_direction,
            "page": controller.page,
        },
        "draft": {"title": controller.draft_title, "due_date": controller.draft_due_date},
        "tasks": [
            {
                **row.task.to_row(),
                "status_label": STATUS_LABELS[row.task.status],
                "overdue": row.overdue,
            }
            for row in view.rows
        ],
        "filtered_count": view.filtered_count,
        "total_pages": view.total_pages,
        "pagination": (
            {
                "summary": view.summary,
                "has_previous": view.page > 1,
                "has_next": view.page < view.total_pages,
            }
            if view.show_pagination
            else None
        ),
        "empty_message": view.empty_message,
    }


def create_app(
    controller: TaskListController,
    *,
    auth: AuthContext | None = None,
    load_on_startup: bool = True,
    session_id: str | None = None,
) -> FastAPI:
    """Build the HTTP surface over one controller, i.e. one session.

    Controller and store logs emitted while serving a request carry the
    session id and, once known, the owner's user id.
    """
    app = FastAPI()
    # Configure uvicorn logging at app creation to avoid import-time side effects
    configure_uvicorn_logging()
    logger = get_json_logger("taskboard.gateway")
    metrics = get_metrics()
    identity: AuthContext = auth or StoreAuthContext(controller.store)
    sid = session_id or str(uuid.uuid4())
    session: dict[str, str | None] = {"user_id": None}
    # one operation at a time against the shared controller state
    lock = asyncio.Lock()

    async def run(fn: Callable[..., T], *args: Any) -> T:
        async with lock:
            with use_session_context(sid, user_id=session["user_id"]):
                return await asyncio.to_thread(fn, *args)

    @app.on_event("startup")
    async def _on_startup() -> None:
        if load_on_startup:
            await run(controller.start)
        logger.info(
            "gateway started",
            extra={"event": "gateway_start", "service": "gateway", "session_id": sid},
        )

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        close = getattr(controller.store, "close", None)
        if close is not None:
            await run(close)
        logger.info(
            "gateway shutdown",
            extra={"event": "gateway_shutdown", "service": "gateway", "session_id": sid},
        )

    @app.middleware("http")
    async def _count_requests(request: Request, call_next: Any) -> Any:
        response = await call_next(request)
        metrics.increment(
            "gateway_requests",
            {"method": request.method, "status": str(response.status_code)},
        )
        return response

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/ready")
    async def ready() -> dict[str, str]:
        ping = getattr(controller.store, "ping", None)
        if ping is None:
            return {"status": "ok"}
        try:
            await asyncio.to_thread(ping)
        except StoreError as exc:
            logger.error(
                "gateway not ready",
                extra={"event": "gateway_error", "service": "gateway", "path": "ready"},
            )
            metrics.increment("gateway_ready_errors", {})
            raise HTTPException(status_code=503, detail="store not ready") from exc
        return {"status": "ok"}

    @app.get("/state")
    async def state() -> dict[str, Any]:
        async with lock:
            return render_state(controller)

    @app.post("/reload")
    async def reload() -> dict[str, Any]:
        await run(controller.reload)
        return render_state(controller)

    @app.post("/tasks")
    async def create_task(body: CreateTaskRequest) -> dict[str, Any]:
        def _create() -> None:
            owner = identity.current_user_id()
            session["user_id"] = owner
            with use_session_context(sid, user_id=owner):
                if body.title is None:
                    controller.submit_draft(owner)
                else:
                    controller.create(body.title, body.due_date, owner)

        try:
            await run(_create)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return render_state(controller)

    @app.patch("/tasks/{task_id}")
    async def update_task(task_id: int, body: StatusRequest) -> dict[str, Any]:
        await run(controller.set_status, task_id, body.status)
        return render_state(controller)

    @app.delete("/tasks/{task_id}")
    async def delete_task(task_id: int) -> dict[str, Any]:
        await run(controller.delete, task_id)
        return render_state(controller)

    @app.put("/draft")
    async def set_draft(body: DraftRequest) -> dict[str, Any]:
        await run(controller.set_draft, body.title, body.due_date)
        return render_state(controller)

    @app.patch("/view")
    async def update_view(body: ViewRequest) -> dict[str, Any]:
        def _apply() -> None:
            if body.search_query is not None:
                controller.set_search_query(body.search_query)
            if body.page is not None:
                controller.set_page(body.page)
            if body.status_filter is not None:
                controller.set_status_filter(body.status_filter)

        await run(_apply)
        return render_state(controller)

    @app.post("/view/sort-toggle")
    async def sort_toggle() -> dict[str, Any]:
        await run(controller.toggle_sort)
        return render_state(controller)

    @app.post("/view/next-page")
    async def page_next() -> dict[str, Any]:
        await run(controller.next_page)
        return render_state(controller)

    @app.post("/view/previous-page")
    async def page_previous() -> dict[str, Any]:
        await run(controller.previous_page)
        return render_state(controller)

    return app


__all__ = ["create_app", "render_state"]
