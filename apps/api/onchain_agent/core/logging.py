"""
apps/api/onchain_agent/core/logging.py
Structured logging setup using structlog
"""

import logging
import sys
from typing import Optional
import structlog
from structlog.stdlib import BoundLogger
from .config import Settings


def setup_logging(settings: Optional[Settings] = None) -> BoundLogger:
    """
    Configure structured logging for the application

    Args:
        settings: Loaded settings. When omitted (e.g. the settings themselves
            failed to load) INFO level console output is used.

    Returns:
        Configured logger instance
    """
    level = settings.LOG_LEVEL if settings else "INFO"
    log_format = settings.LOG_FORMAT if settings else "console"

    # Configure stdlib logging (uvicorn logs flow through here too)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
        force=True,
    )

    # Shared processors for all logs
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer()
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger("onchain_agent")
    logger.debug("logging_configured", level=level, format=log_format)
    return logger


def get_logger(name: Optional[str] = None) -> BoundLogger:
    """
    Get a logger instance

    Args:
        name: Logger name (e.g., "lifecycle", "http")

    Returns:
        Configured structlog logger
    """
    if name:
        return structlog.get_logger(f"onchain_agent.{name}")
    return structlog.get_logger("onchain_agent")


# ============================================================================
# Context Manager for Request Logging
# ============================================================================

class LogContext:
    """
    Context manager for adding request-specific context to logs

    Usage:
        with LogContext(request_id="123"):
            logger.info("handling_request")
    """

    def __init__(self, **kwargs):
        self.context = kwargs

    def __enter__(self):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        structlog.contextvars.clear_contextvars()
        return False


__all__ = ["setup_logging", "get_logger", "LogContext"]
