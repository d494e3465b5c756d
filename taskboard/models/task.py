from __future__ import annotations

import datetime as _dt
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

TaskStatus = Literal["pending", "in-progress", "completed"]
StatusFilter = Literal["all", "pending", "in-progress", "completed"]
SortField = Literal["due_date", "created_at"]
SortDirection = Literal["asc", "desc"]

TASK_STATUSES: tuple[str, ...] = get_args(TaskStatus)
STATUS_FILTERS: tuple[str, ...] = get_args(StatusFilter)
SORT_FIELDS: tuple[str, ...] = get_args(SortField)
SORT_DIRECTIONS: tuple[str, ...] = get_args(SortDirection)

STATUS_LABELS: dict[str, str] = {
    "all": "All Status",
    "pending": "Pending",
    "in-progress": "In Progress",
    "completed": "Completed",
}


def _empty_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def as_utc(value: _dt.datetime) -> _dt.datetime:
    """Return an aware datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=_dt.UTC)
    return value


class Task(BaseModel):
    """A task row as issued by the remote store.

    - `id` and `created_at` come from the store and are never set locally
    - `owner` travels on the wire as `user_id`
    - an empty `due_date` means "no deadline"
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    title: str = Field(min_length=1)
    status: TaskStatus = "pending"
    due_date: _dt.datetime | None = None
    created_at: _dt.datetime
    owner: str | None = Field(default=None, alias="user_id")

    @field_validator("due_date", mode="before")
    @classmethod
    def _blank_due_date(cls, value: Any) -> Any:
        return _empty_to_none(value)

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class NewTask(BaseModel):
    """Client-supplied fields for an insert; the store fills in the rest."""

    title: str
    due_date: _dt.datetime | None = None
    status: TaskStatus = "pending"
    user_id: str | None = None

    @field_validator("title")
    @classmethod
    def _trimmed_title(cls, value: str) -> str:
        v = value.strip()
        if not v:
            raise ValueError("title must be non-empty")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def _blank_due_date(cls, value: Any) -> Any:
        return _empty_to_none(value)

    @field_validator("user_id", mode="before")
    @classmethod
    def _blank_user(cls, value: Any) -> Any:
        return _empty_to_none(value)

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


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
