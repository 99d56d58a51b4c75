"""
apps/api/onchain_agent/api/server.py
HTTP listener for the FastAPI application.

Responsibilities:
- Bind the listening socket (bind failures surface as ListenerBindError)
- Run uvicorn on that socket without uvicorn's own signal handling
- Stop gracefully, or force-stop when a drain deadline passes
"""

import asyncio
import contextlib
import socket
import time
from typing import Optional

import uvicorn

from .lifespan.base import ManagedResource, ResourceState
from ..core.config import Settings
from ..core.exceptions import ListenerBindError


class _ManagedServer(uvicorn.Server):
    """uvicorn server that leaves SIGINT/SIGTERM to the lifecycle controller."""

    def install_signal_handlers(self) -> None:  # uvicorn < 0.29
        pass

    @contextlib.contextmanager
    def capture_signals(self):  # uvicorn >= 0.29
        yield


class HTTPListener(ManagedResource):
    """
    Listening socket plus the uvicorn server serving the app on it.

    ``open`` returns once uvicorn reports it is accepting connections.
    """

    name = "http_listener"

    def __init__(
        self,
        app,
        host: str = "0.0.0.0",
        port: int = 5000,
        start_timeout: float = 10.0,
        log_level: str = "info",
    ) -> None:
        super().__init__()
        self.app = app
        self.host = host
        self.port = port
        self.start_timeout = start_timeout
        self.log_level = log_level
        self.server: Optional[_ManagedServer] = None
        self._socket: Optional[socket.socket] = None
        self._serve_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, app, settings: Settings) -> "HTTPListener":
        return cls(
            app,
            host=settings.API_HOST,
            port=settings.PORT,
            start_timeout=settings.LISTENER_START_TIMEOUT,
            log_level=settings.LOG_LEVEL.lower(),
        )

    @property
    def bound_port(self) -> Optional[int]:
        """Actual port, useful when constructed with port 0."""
        if self._socket is None:
            return None
        return self._socket.getsockname()[1]

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def open(self) -> None:
        """
        Bind and start serving.

        Raises:
            ListenerBindError: the address is unavailable, or uvicorn stopped
                or stalled before accepting connections
        """
        if self._serve_task is not None:
            self.safe_log("http_listener_already_started")
            return

        self.state = ResourceState.OPENING
        self._socket = self._bind()

        config = uvicorn.Config(
            self.app,
            log_config=None,
            log_level=self.log_level,
            access_log=False,
            lifespan="on",
        )
        self.server = _ManagedServer(config)
        self._serve_task = asyncio.create_task(
            self.server.serve(sockets=[self._socket]),
            name="http-listener",
        )

        try:
            await self._wait_started()
        except ListenerBindError as e:
            self._mark_failed(e)
            self.force_close()
            raise

        self._mark_open()
        self.metadata.update({
            "host": self.host,
            "port": self.bound_port,
            "url": f"http://localhost:{self.bound_port}",
        })
        self.safe_log("server_running", **self.metadata)

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
        except OSError as e:
            sock.close()
            error = ListenerBindError(self.host, self.port, e.strerror or str(e))
            self._mark_failed(error)
            raise error from e
        sock.set_inheritable(True)
        return sock

    async def _wait_started(self) -> None:
        deadline = time.monotonic() + self.start_timeout
        # uvicorn only exposes a `started` flag, no event to await
        while not self.server.started:
            if self._serve_task.done():
                exc = None if self._serve_task.cancelled() else self._serve_task.exception()
                reason = str(exc) if exc else "server exited before accepting connections"
                raise ListenerBindError(self.host, self.port, reason)
            if time.monotonic() > deadline:
                raise ListenerBindError(
                    self.host, self.port, f"not accepting connections after {self.start_timeout}s"
                )
            await asyncio.sleep(0.05)

    async def close(self) -> None:
        """Stop accepting connections and wait for uvicorn to finish."""
        if self._serve_task is None:
            return

        self.state = ResourceState.CLOSING
        self.server.should_exit = True
        try:
            await self._serve_task
        finally:
            self._release()
        self.safe_log("http_server_closed")

    def force_close(self) -> None:
        """Abandon in-flight work and stop immediately."""
        if self.server is not None:
            self.server.force_exit = True
            self.server.should_exit = True
        if self._serve_task is not None and not self._serve_task.done():
            self._serve_task.cancel()
        self._release()

    def _release(self) -> None:
        self._serve_task = None
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        if self.state != ResourceState.FAILED:
            self._mark_closed()


__all__ = ["HTTPListener"]
