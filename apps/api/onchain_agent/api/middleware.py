"""
apps/api/onchain_agent/api/middleware.py
Request middleware applied to every route: security headers and request logging.
"""

import time
import uuid
from typing import Dict, Iterable, Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..core.logging import LogContext

logger = structlog.get_logger("onchain_agent.http")


CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    "base-uri 'self'",
    "font-src 'self' https: data:",
    "form-action 'self'",
    "frame-ancestors 'self'",
    "img-src 'self' data:",
    "object-src 'none'",
    "script-src 'self'",
    "script-src-attr 'none'",
    "style-src 'self' https: 'unsafe-inline'",
    "upgrade-insecure-requests",
])

DEFAULT_SECURITY_HEADERS: Dict[str, str] = {
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Hardened default response headers.

    Paths under ``csp_exempt_paths`` (the interactive API docs, which load
    assets from a CDN) get every header except Content-Security-Policy.
    """

    def __init__(self, app, csp_exempt_paths: Iterable[str] = ()):
        super().__init__(app)
        self.csp_exempt_paths = tuple(csp_exempt_paths)

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in DEFAULT_SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        path = request.url.path
        if not (self.csp_exempt_paths and path.startswith(self.csp_exempt_paths)):
            response.headers.setdefault("Content-Security-Policy", CONTENT_SECURITY_POLICY)
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request: method, path, status, duration, size."""

    async def dispatch(self, request: Request, call_next):
        request_id: Optional[str] = request.headers.get("x-request-id") or uuid.uuid4().hex
        start = time.perf_counter()

        with LogContext(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "http_request_failed",
                    method=request.method,
                    path=request.url.path,
                    error=str(e),
                    duration_ms=round((time.perf_counter() - start) * 1000, 3),
                )
                raise

            response.headers["X-Request-ID"] = request_id
            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 3),
                content_length=response.headers.get("content-length"),
            )
        return response


__all__ = [
    "SecurityHeadersMiddleware",
    "RequestLoggingMiddleware",
    "DEFAULT_SECURITY_HEADERS",
    "CONTENT_SECURITY_POLICY",
]
