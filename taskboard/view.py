"""Pure derived-view helpers for the task list.

Nothing here touches the store or mutates its inputs; the controller calls
these on every render to turn the synchronized list plus the view-control
parameters into the visible page.
"""

from __future__ import annotations

import datetime as _dt
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from taskboard.models import StatusFilter, Task, as_utc

PAGE_SIZE = 5
EMPTY_MESSAGE = "No tasks found. Try adjusting your search or filters."


@dataclass(frozen=True, slots=True)
class TaskRow:
    task: Task
    overdue: bool


@dataclass(frozen=True, slots=True)
class ListView:
    filtered: list[Task]
    rows: list[TaskRow]
    page: int
    total_pages: int
    show_pagination: bool
    summary: str | None
    empty_message: str | None

    @property
    def filtered_count(self) -> int:
        return len(self.filtered)


def filter_tasks(
    tasks: Iterable[Task], search_query: str, status_filter: StatusFilter
) -> list[Task]:
    needle = search_query.lower()
    return [
        t
        for t in tasks
        if needle in t.title.lower() and (status_filter == "all" or t.status == status_filter)
    ]


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(count / page_size)


def paginate(tasks: Sequence[Task], page: int, page_size: int = PAGE_SIZE) -> list[Task]:
    start = (page - 1) * page_size
    if start < 0:
        return []
    return list(tasks[start : start + page_size])


def is_overdue(task: Task, now: _dt.datetime | None = None) -> bool:
    if task.due_date is None or task.status == "completed":
        return False
    current = as_utc(now) if now is not None else _dt.datetime.now(_dt.UTC)
    return as_utc(task.due_date) < current


def page_summary(page: int, count: int, page_size: int = PAGE_SIZE) -> str:
    first = (page - 1) * page_size + 1
    last = min(page * page_size, count)
    return f"Showing {first} to {last} of {count} tasks"


def next_page(page: int, pages: int) -> int:
    return max(1, min(pages, page + 1))


def previous_page(page: int) -> int:
    return max(1, page - 1)


def build_view(
    tasks: Iterable[Task],
    *,
    search_query: str,
    status_filter: StatusFilter,
    page: int,
    now: _dt.datetime | None = None,
) -> ListView:
    filtered = filter_tasks(tasks, search_query, status_filter)
    pages = total_pages(len(filtered))
    current = now if now is not None else _dt.datetime.now(_dt.UTC)
    rows = [TaskRow(task=t, overdue=is_overdue(t, current)) for t in paginate(filtered, page)]
    show = pages > 1
    return ListView(
        filtered=filtered,
        rows=rows,
        page=page,
        total_pages=pages,
        show_pagination=show,
        summary=page_summary(page, len(filtered)) if show else None,
        empty_message=EMPTY_MESSAGE if not filtered else None,
    )


__all__ = [
    "PAGE_SIZE",
    "EMPTY_MESSAGE",
    "TaskRow",
    "ListView",
    "filter_tasks",
    "total_pages",
    "paginate",
    "is_overdue",
    "page_summary",
    "next_page",
    "previous_page",
    "build_view",
]
