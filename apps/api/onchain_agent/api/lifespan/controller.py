"""
apps/api/onchain_agent/api/lifespan/controller.py
Service lifecycle controller.

Sequence:
1. Validate configuration (nothing is allocated before this passes)
2. Connect to MongoDB
3. Bind the HTTP listener, only after MongoDB answered
4. Serve until SIGINT/SIGTERM
5. Drain: close MongoDB (errors logged), then the listener, within
   SHUTDOWN_TIMEOUT

Every path ends in TERMINATED with an exit code returned from ``run``.
"""

import asyncio
import signal
from typing import Callable, Optional

import structlog

from .base import LifecycleState
from ..server import HTTPListener
from ...core.config import Settings
from ...core.exceptions import (
    ConfigurationError,
    ListenerBindError,
    StorageCloseError,
    StorageConnectionError,
)
from ...database.mongo import MongoDatabase, set_driver_option

logger = structlog.get_logger("onchain_agent.lifecycle")

EXIT_OK = 0
EXIT_FAILURE = 1

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LifecycleController:
    """
    Owns the storage handle and the listener handle for one process run.

    Signal handlers call ``request_shutdown``; HTTP handlers read
    ``is_ready`` through ``app.state.lifecycle``.
    """

    def __init__(
        self,
        settings: Settings,
        app,
        storage_factory: Optional[Callable[[Settings], MongoDatabase]] = None,
        listener_factory: Optional[Callable[..., HTTPListener]] = None,
    ) -> None:
        self.settings = settings
        self.app = app
        self.state = LifecycleState.INITIALIZING
        self.storage: Optional[MongoDatabase] = None
        self.listener: Optional[HTTPListener] = None
        self.exit_code: Optional[int] = None
        self.shutdown_signal: Optional[str] = None

        self._storage_factory = storage_factory or MongoDatabase.from_settings
        self._listener_factory = listener_factory or HTTPListener.from_settings
        self._shutdown_requested: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        app.state.lifecycle = self

    @property
    def is_ready(self) -> bool:
        return self.state == LifecycleState.LISTENING

    @property
    def resources(self) -> list:
        return [r for r in (self.storage, self.listener) if r is not None]

    # ------------------------------------------------------------------ #
    # Run
    # ------------------------------------------------------------------ #

    async def run(self) -> int:
        """Drive the full lifecycle; return the process exit code."""
        try:
            self._validate_configuration()
        except ConfigurationError as e:
            logger.error("missing_required_configuration", **e.to_dict())
            return self._terminate(e.exit_code)

        self._shutdown_requested = asyncio.Event()
        if self.shutdown_signal is not None:
            self._shutdown_requested.set()
        self._install_signal_handlers()
        try:
            return await self._run()
        finally:
            self._remove_signal_handlers()

    async def _run(self) -> int:
        set_driver_option("strict_query", self.settings.MONGODB_STRICT_QUERY)

        self._transition(LifecycleState.CONNECTING_STORAGE)
        self.storage = self._storage_factory(self.settings)
        try:
            await self.storage.open()
        except StorageConnectionError as e:
            logger.error("mongodb_connection_error", **e.to_dict())
            return self._terminate(e.exit_code)

        self.listener = self._listener_factory(self.app, self.settings)
        try:
            await self.listener.open()
        except ListenerBindError as e:
            logger.error("listener_bind_error", **e.to_dict())
            await self._close_storage()
            return self._terminate(e.exit_code)

        self._transition(LifecycleState.LISTENING)
        await self._shutdown_requested.wait()
        return await self._drain()

    def _validate_configuration(self) -> None:
        if not self.settings.mongodb_uri:
            raise ConfigurationError("MONGODB_URI", "missing required env var")

    # ------------------------------------------------------------------ #
    # Shutdown
    # ------------------------------------------------------------------ #

    def request_shutdown(self, signame: str = "shutdown") -> None:
        """
        Ask for the drain sequence. Only the first request counts.
        """
        if self.shutdown_signal is not None:
            logger.warning(
                "shutdown_already_in_progress",
                signal=signame,
                first_signal=self.shutdown_signal,
            )
            return

        self.shutdown_signal = signame
        logger.info("shutdown_requested", signal=signame, state=self.state.value)
        if self._shutdown_requested is not None:
            self._shutdown_requested.set()

    async def _drain(self) -> int:
        self._transition(LifecycleState.SHUTTING_DOWN)
        logger.info("shutting_down_gracefully", signal=self.shutdown_signal)

        await self._close_storage()

        try:
            await asyncio.wait_for(
                self.listener.close(), timeout=self.settings.SHUTDOWN_TIMEOUT
            )
        except asyncio.TimeoutError:
            logger.error(
                "drain_timeout_exceeded",
                timeout_seconds=self.settings.SHUTDOWN_TIMEOUT,
                action="force_exit",
            )
            self.listener.force_close()
            return self._terminate(EXIT_FAILURE)
        except Exception as e:
            logger.error(
                "listener_close_error",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            self.listener.force_close()
            return self._terminate(EXIT_FAILURE)

        logger.info("http_server_closed")
        return self._terminate(EXIT_OK)

    async def _close_storage(self) -> None:
        if self.storage is None:
            return
        try:
            await self.storage.close()
        except StorageCloseError as e:
            logger.error("error_closing_mongodb_connection", **e.to_dict())

    def _terminate(self, exit_code: int) -> int:
        self.exit_code = exit_code
        self._transition(LifecycleState.TERMINATED)
        return exit_code

    def _transition(self, state: LifecycleState) -> None:
        logger.debug("lifecycle_transition", from_state=self.state.value, to_state=state.value)
        self.state = state

    # ------------------------------------------------------------------ #
    # Signals
    # ------------------------------------------------------------------ #

    def _install_signal_handlers(self) -> None:
        self._loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self.request_shutdown, sig.name)
            except NotImplementedError:
                # Windows event loops have no add_signal_handler
                signal.signal(sig, self._handle_signal_threadsafe)

    def _handle_signal_threadsafe(self, signum, frame) -> None:
        self._loop.call_soon_threadsafe(self.request_shutdown, signal.Signals(signum).name)

    def _remove_signal_handlers(self) -> None:
        if self._loop is None:
            return
        for sig in SHUTDOWN_SIGNALS:
            try:
                self._loop.remove_signal_handler(sig)
            except NotImplementedError:
                signal.signal(sig, signal.SIG_DFL)
        self._loop = None


__all__ = ["LifecycleController", "EXIT_OK", "EXIT_FAILURE"]
