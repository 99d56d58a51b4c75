"""
apps/api/onchain_agent/api/lifespan/manager.py
FastAPI lifespan hook.

Resources (MongoDB, the listener) belong to the LifecycleController, which
runs outside the ASGI app. This hook only reports the app coming up and
going down.
"""

from contextlib import asynccontextmanager
import structlog

logger = structlog.get_logger("onchain_agent.lifespan")


@asynccontextmanager
async def lifespan(app):
    """
    FastAPI lifespan context manager.

    Startup:
    - Log app start (and whether a lifecycle controller is attached)

    Shutdown:
    - Log app stop
    """
    controller = getattr(app.state, "lifecycle", None)
    logger.info(
        "application_starting",
        app_name=app.title,
        version=app.version,
        managed=controller is not None,
    )

    yield

    logger.info("application_stopped")


__all__ = ["lifespan"]
