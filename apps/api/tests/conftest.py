import asyncio
from typing import List, Optional

import pytest

from onchain_agent.api.lifespan.base import ManagedResource
from onchain_agent.core.config import Settings
from onchain_agent.core.exceptions import (
    ListenerBindError,
    StorageCloseError,
    StorageConnectionError,
)
from onchain_agent.database.mongo import set_driver_option


def make_settings(**overrides) -> Settings:
    values = {"MONGODB_URI": "mongodb://localhost:27017/test", "SHUTDOWN_TIMEOUT": 1.0}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeStorage(ManagedResource):
    """Stands in for MongoDatabase; records calls into a shared journal."""

    name = "mongodb"

    def __init__(self, journal: List[str], fail_open: bool = False, fail_close: bool = False):
        super().__init__()
        self.journal = journal
        self.fail_open = fail_open
        self.fail_close = fail_close
        self.close_calls = 0

    async def open(self) -> None:
        self.journal.append("storage.open")
        await asyncio.sleep(0)
        if self.fail_open:
            raise StorageConnectionError("connection refused")
        self._mark_open()

    async def close(self) -> None:
        self.close_calls += 1
        self.journal.append("storage.close")
        await asyncio.sleep(0)
        if self.fail_close:
            raise StorageCloseError("server went away")
        self._mark_closed()


class FakeListener(ManagedResource):
    """Stands in for HTTPListener."""

    name = "http_listener"

    def __init__(
        self,
        journal: List[str],
        fail_open: bool = False,
        close_delay: float = 0.0,
        close_error: Optional[Exception] = None,
    ):
        super().__init__()
        self.journal = journal
        self.fail_open = fail_open
        self.close_delay = close_delay
        self.close_error = close_error
        self.close_calls = 0
        self.forced = False

    async def open(self) -> None:
        self.journal.append("listener.open")
        if self.fail_open:
            raise ListenerBindError("0.0.0.0", 5000, "Address already in use")
        self._mark_open()

    async def close(self) -> None:
        self.close_calls += 1
        self.journal.append("listener.close.start")
        await asyncio.sleep(self.close_delay)
        if self.close_error:
            raise self.close_error
        self.journal.append("listener.close.done")
        self._mark_closed()

    def force_close(self) -> None:
        self.forced = True
        self.journal.append("listener.force_close")


class Doubles:
    """Factories handed to LifecycleController, keeping the built fakes."""

    def __init__(self, **options):
        self.journal: List[str] = []
        self.options = options
        self.storage: Optional[FakeStorage] = None
        self.listener: Optional[FakeListener] = None

    def storage_factory(self, settings):
        self.storage = FakeStorage(
            self.journal,
            fail_open=self.options.get("storage_fail_open", False),
            fail_close=self.options.get("storage_fail_close", False),
        )
        return self.storage

    def listener_factory(self, app, settings):
        self.listener = FakeListener(
            self.journal,
            fail_open=self.options.get("listener_fail_open", False),
            close_delay=self.options.get("listener_close_delay", 0.0),
            close_error=self.options.get("listener_close_error"),
        )
        return self.listener


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture(autouse=True)
def reset_driver_options():
    yield
    set_driver_option("strict_query", False)
