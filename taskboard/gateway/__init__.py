from __future__ import annotations

from .app import create_app, render_state

__all__ = ["create_app", "render_state"]
