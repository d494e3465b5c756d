"""Task list controller backed by a remote row store."""

from __future__ import annotations

from taskboard.controller import TaskListController

__all__ = ["TaskListController"]
