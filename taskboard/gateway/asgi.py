from __future__ import annotations

from taskboard.auth import StaticAuthContext, StoreAuthContext
from taskboard.config import build_store, load_config
from taskboard.controller import TaskListController

from .app import create_app

_cfg = load_config()
_store = build_store(_cfg)
_auth = StaticAuthContext(_cfg.user_id) if _cfg.user_id else StoreAuthContext(_store)
app = create_app(TaskListController(_store, table=_cfg.table), auth=_auth)
