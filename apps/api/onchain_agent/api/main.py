"""
apps/api/onchain_agent/api/main.py
FastAPI application and process entry point.

Architecture:
- create_app() builds the ASGI app (routes + middleware), no I/O
- run() loads settings and hands the app to the LifecycleController,
  which owns MongoDB, the HTTP listener, signals and the exit code
"""

import asyncio
import sys
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from ..core.config import Settings, get_settings
from ..core.logging import setup_logging, get_logger
from .lifespan.controller import EXIT_FAILURE, LifecycleController
from .lifespan.manager import lifespan
from .middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from .routes import health

logger = get_logger("main")

WELCOME_MESSAGE = "On-chain Security AI Agent API"


# ============================================================================
# Create Application
# ============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create FastAPI application.

    Args:
        settings: Configuration; defaults to the process settings

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        description="On-chain Security AI Agent backend",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Last added runs first: security headers -> CORS -> request logging
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        SecurityHeadersMiddleware,
        csp_exempt_paths=("/api/docs", "/api/redoc"),
    )

    app.add_api_route(
        "/",
        root,
        methods=["GET"],
        response_class=PlainTextResponse,
        tags=["Root"],
    )
    app.include_router(health.router)

    logger.debug("app_created", name=settings.APP_NAME, version=settings.APP_VERSION)
    return app


async def root() -> PlainTextResponse:
    """Welcome message"""
    return PlainTextResponse(WELCOME_MESSAGE)


# ============================================================================
# Process Entry Point
# ============================================================================

def run() -> None:
    """Start the service and exit with the lifecycle controller's status."""
    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        logger.error("invalid_configuration", error=str(e))
        sys.exit(EXIT_FAILURE)

    setup_logging(settings)
    logger.info(
        "starting_service",
        name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        port=settings.PORT,
    )

    controller = LifecycleController(settings, app=create_app(settings))
    sys.exit(asyncio.run(controller.run()))


if __name__ == "__main__":
    run()


__all__ = ["create_app", "run", "WELCOME_MESSAGE"]
