from __future__ import annotations

import datetime as _dt
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from taskboard.models import (
    SORT_DIRECTIONS,
    SORT_FIELDS,
    STATUS_FILTERS,
    TASK_STATUSES,
    NewTask,
    SortDirection,
    SortField,
    StatusFilter,
    Task,
    TaskStatus,
)
from taskboard.observability import get_json_logger, get_metrics
from taskboard.store import Row, RowStore, StoreError
from taskboard.view import ListView, build_view, next_page, previous_page, total_pages

RELOAD_FAILED = "An error occurred"
CREATE_FAILED = "Failed to add task"
UPDATE_FAILED = "Failed to update task"
DELETE_FAILED = "Failed to delete task"


def _require_choice(name: str, value: str, choices: tuple[str, ...]) -> str:
    if value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}; got {value!r}")
    return value


class TaskListController:
    """Holds one session's task list and keeps it in step with the row store.

    Every operation catches `StoreError` at its own boundary, records the
    message as `error` and leaves the rest of the state as it was. Local
    state is only changed after the store confirms a write; nothing is
    applied optimistically.

    Changing the sort field, sort direction or status filter triggers a
    reload. Search text and page changes are purely local.
    """

    def __init__(self, store: RowStore, *, table: str = "tasks") -> None:
        self._store = store
        self._table = table
        self._logger = get_json_logger("taskboard.controller")
        self._metrics = get_metrics()

        self.tasks: list[Task] = []
        self.error: str | None = None
        self.loading: bool = True

        self.search_query: str = ""
        self.status_filter: StatusFilter = "all"
        self.sort_field: SortField = "created_at"
        self.sort_direction: SortDirection = "desc"
        self.page: int = 1

        self.draft_title: str = ""
        self.draft_due_date: str = ""

    @property
    def store(self) -> RowStore:
        return self._store

    # ----------------------------
    # Internal helpers
    # ----------------------------
    def _fail(self, op: str, exc: StoreError, default: str, **fields: Any) -> None:
        self.error = exc.message or default
        self._logger.error(
            "controller operation failed",
            extra={
                "event": "controller_error",
                "op": op,
                **fields,
                "metadata": {"error": self.error[:200]},
            },
        )
        self._metrics.increment("controller_errors", {"op": op})

    @staticmethod
    def _parse_rows(rows: Iterable[Row]) -> list[Task]:
        try:
            return [Task.model_validate(r) for r in rows]
        except ValidationError as exc:
            count = exc.error_count()
            raise StoreError(f"store returned an invalid task row ({count} error(s))") from exc

    # ----------------------------
    # Store-backed operations
    # ----------------------------
    def start(self) -> None:
        """Initial load; call once when the session begins."""
        self.reload()

    def reload(
        self,
        sort_field: SortField | None = None,
        sort_direction: SortDirection | None = None,
        status_filter: StatusFilter | None = None,
    ) -> None:
        """Replace the local list with a fresh read from the store.

        Any parameter given becomes the new view-control value before the
        fetch. On failure the previous list is kept.
        """
        if sort_field is not None:
            _require_choice("sort_field", sort_field, SORT_FIELDS)
            self.sort_field = sort_field
        if sort_direction is not None:
            _require_choice("sort_direction", sort_direction, SORT_DIRECTIONS)
            self.sort_direction = sort_direction
        if status_filter is not None:
            _require_choice("status_filter", status_filter, STATUS_FILTERS)
            self.status_filter = status_filter

        flt = None if self.status_filter == "all" else {"status": self.status_filter}
        try:
            rows = self._store.list(
                self._table,
                order_by=self.sort_field,
                ascending=self.sort_direction == "asc",
                filter=flt,
            )
            self.tasks = self._parse_rows(rows or [])
            self._logger.info(
                "tasks reloaded",
                extra={
                    "event": "controller_reload",
                    "op": "reload",
                    "attributes": {
                        "count": len(self.tasks),
                        "sort_field": self.sort_field,
                        "sort_direction": self.sort_direction,
                        "status_filter": self.status_filter,
                    },
                },
            )
        except StoreError as exc:
            self._fail("reload", exc, RELOAD_FAILED)
        finally:
            self.loading = False

    def create(
        self,
        title: str,
        due_date: str | _dt.datetime | None = None,
        owner_id: str | None = None,
    ) -> Task | None:
        """Insert a pending task and prepend the stored record.

        Blank titles are ignored without contacting the store. Returns the
        stored task, or None when nothing was created.
        """
        if not title or not title.strip():
            return None
        payload = NewTask(title=title, due_date=due_date, user_id=owner_id)
        self.error = None
        try:
            row = self._store.insert(self._table, payload.to_row())
            (task,) = self._parse_rows([row])
        except StoreError as exc:
            self._fail("create", exc, CREATE_FAILED)
            return None
        self.tasks = [task, *(t for t in self.tasks if t.id != task.id)]
        self.draft_title = ""
        self.draft_due_date = ""
        self._logger.info(
            "task created",
            extra={"event": "controller_create", "op": "create", "task_id": task.id},
        )
        return task

    def submit_draft(self, owner_id: str | None = None) -> Task | None:
        return self.create(self.draft_title, self.draft_due_date or None, owner_id)

    def set_status(self, task_id: int, status: TaskStatus) -> None:
        _require_choice("status", status, TASK_STATUSES)
        try:
            self._store.update(self._table, task_id, {"status": status})
        except StoreError as exc:
            self._fail("set_status", exc, UPDATE_FAILED, task_id=task_id)
            return
        self.tasks = [
            t.model_copy(update={"status": status}) if t.id == task_id else t for t in self.tasks
        ]
        self._logger.info(
            "task status changed",
            extra={
                "event": "controller_set_status",
                "op": "set_status",
                "task_id": task_id,
                "attributes": {"status": status},
            },
        )

    def delete(self, task_id: int) -> None:
        try:
            self._store.delete(self._table, task_id)
        except StoreError as exc:
            self._fail("delete", exc, DELETE_FAILED, task_id=task_id)
            return
        self.tasks = [t for t in self.tasks if t.id != task_id]
        self._logger.info(
            "task deleted",
            extra={"event": "controller_delete", "op": "delete", "task_id": task_id},
        )

    # ----------------------------
    # View controls
    # ----------------------------
    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def set_status_filter(self, status_filter: StatusFilter) -> None:
        _require_choice("status_filter", status_filter, STATUS_FILTERS)
        if status_filter != self.status_filter:
            self.reload(status_filter=status_filter)

    def set_sort(self, field: SortField, direction: SortDirection) -> None:
        _require_choice("sort_field", field, SORT_FIELDS)
        _require_choice("sort_direction", direction, SORT_DIRECTIONS)
        if (field, direction) != (self.sort_field, self.sort_direction):
            self.reload(sort_field=field, sort_direction=direction)

    def toggle_sort(self) -> None:
        """Sort by due date and flip the direction.

        One control drives both axes: once used there is no way back to
        ordering by creation time through it.
        """
        flipped: SortDirection = "desc" if self.sort_direction == "asc" else "asc"
        self.reload(sort_field="due_date", sort_direction=flipped)

    def set_page(self, page: int) -> None:
        self.page = max(1, int(page))

    def next_page(self) -> None:
        pages = total_pages(len(self.view().filtered))
        self.page = next_page(self.page, pages)

    def previous_page(self) -> None:
        self.page = previous_page(self.page)

    def set_draft(self, title: str | None = None, due_date: str | None = None) -> None:
        if title is not None:
            self.draft_title = title
        if due_date is not None:
            self.draft_due_date = due_date

    # ----------------------------
    # Derived view
    # ----------------------------
    def view(self, now: _dt.datetime | None = None) -> ListView:
        return build_view(
            self.tasks,
            search_query=self.search_query,
            status_filter=self.status_filter,
            page=self.page,
            now=now,
        )


__all__ = [
    "TaskListController",
    "RELOAD_FAILED",
    "CREATE_FAILED",
    "UPDATE_FAILED",
    "DELETE_FAILED",
]
