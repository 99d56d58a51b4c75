"""Static frontend shell."""

from .app import create_frontend_app, render_app

__all__ = ["create_frontend_app", "render_app"]
