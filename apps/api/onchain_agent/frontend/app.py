"""
apps/api/onchain_agent/frontend/app.py
Frontend application shell: a single static page, no calls to the backend.
"""

from functools import lru_cache

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from jinja2 import Environment, PackageLoader, select_autoescape

HEADING = "On-chain Security AI Agent"


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(
        loader=PackageLoader("onchain_agent.frontend", "templates"),
        autoescape=select_autoescape(["html"]),
    )


def render_app(heading: str = HEADING) -> str:
    """Render the shell page to HTML."""
    return _environment().get_template("index.html").render(heading=heading)


def create_frontend_app() -> FastAPI:
    """
    ASGI app serving the shell at ``/``.

    Run with: uvicorn --factory onchain_agent.frontend.app:create_frontend_app
    """
    app = FastAPI(title=HEADING, docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        return HTMLResponse(render_app())

    return app


__all__ = ["create_frontend_app", "render_app", "HEADING"]
