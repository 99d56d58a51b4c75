"""Base classes and enums for lifecycle-managed resources."""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Dict, Any
import structlog
from datetime import datetime, timezone


class LifecycleState(Enum):
    """States of the service lifecycle controller."""
    INITIALIZING = "initializing"
    CONNECTING_STORAGE = "connecting_storage"
    LISTENING = "listening"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


class ResourceState(Enum):
    """States of a single managed resource (storage, listener)."""
    UNOPENED = "unopened"
    OPENING = "opening"
    OPEN = "open"
    FAILED = "failed"
    CLOSING = "closing"
    CLOSED = "closed"


class ManagedResource(ABC):
    """
    Abstract base class for resources owned by the lifecycle controller.

    Each resource is opened once during startup and closed once during
    shutdown. Subclasses raise from ``open``; ``close`` must tolerate being
    called on a resource that is already closed or was never opened.
    """

    # Override in subclasses
    name: str = "UnnamedResource"

    def __init__(self):
        self.state = ResourceState.UNOPENED
        self.opened_at: Optional[datetime] = None
        self.closed_at: Optional[datetime] = None
        self.error: Optional[str] = None
        self.metadata: Dict[str, Any] = {}
        self._logger = structlog.get_logger(f"onchain_agent.resource.{self.name}")

    @abstractmethod
    async def open(self) -> None:
        """Acquire the resource. Raise on failure."""

    @abstractmethod
    async def close(self) -> None:
        """Release the resource."""

    def _mark_open(self) -> None:
        self.state = ResourceState.OPEN
        self.opened_at = datetime.now(timezone.utc)
        self.error = None

    def _mark_failed(self, error: Exception) -> None:
        self.state = ResourceState.FAILED
        self.error = str(error)

    def _mark_closed(self) -> None:
        self.state = ResourceState.CLOSED
        self.closed_at = datetime.now(timezone.utc)

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return resource status for the readiness endpoint.

        Returns:
            Dictionary of metric name -> value
        """
        uptime = None
        if self.opened_at and self.state == ResourceState.OPEN:
            uptime = (datetime.now(timezone.utc) - self.opened_at).total_seconds()

        return {
            "state": self.state.value,
            "uptime_seconds": uptime,
            "opened_at": self.opened_at.isoformat() if self.opened_at else None,
            "error": self.error,
            "metadata": self.metadata,
        }

    def safe_log(self, event: str, **kwargs):
        """Helper for structured logging."""
        self._logger.info(event, resource=self.name, **kwargs)

    def log_error(self, event: str, error: Exception, **kwargs):
        """Helper for error logging with full context."""
        self._logger.error(
            event,
            resource=self.name,
            error=str(error),
            error_type=type(error).__name__,
            **kwargs,
        )
