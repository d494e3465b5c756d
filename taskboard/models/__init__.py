from __future__ import annotations

from .task import (
    SORT_DIRECTIONS,
    SORT_FIELDS,
    STATUS_FILTERS,
    STATUS_LABELS,
    TASK_STATUSES,
    NewTask,
    SortDirection,
    SortField,
    StatusFilter,
    Task,
    TaskStatus,
    as_utc,
)

__all__ = [
    "Task",
    "NewTask",
    "TaskStatus",
    "StatusFilter",
    "SortField",
    "SortDirection",
    "TASK_STATUSES",
    "STATUS_FILTERS",
    "SORT_FIELDS",
    "SORT_DIRECTIONS",
    "STATUS_LABELS",
    "as_utc",
]
