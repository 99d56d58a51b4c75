"""
apps/api/onchain_agent/database/mongo.py
MongoDB connection handle built on pymongo's asyncio client.

Responsibilities:
- Process-wide driver options (applied once, before any connection)
- Open a connection and confirm it with a ping
- Close it exactly once
- Strict validation of query filters
"""

from typing import Any, Callable, Dict, Mapping, Optional

import structlog
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from ..api.lifespan.base import ManagedResource, ResourceState
from ..core.config import Settings
from ..core.exceptions import StorageCloseError, StorageConnectionError, StrictQueryError

logger = structlog.get_logger("onchain_agent.database")


# ---------------------------------------------------------------------------
# Driver options
# ---------------------------------------------------------------------------

_DRIVER_OPTIONS: Dict[str, Any] = {"strict_query": False}

# Top-level operators allowed in a filter under strict query validation
_TOP_LEVEL_OPERATORS = frozenset({
    "$and", "$or", "$nor", "$expr", "$text", "$where", "$comment", "$jsonSchema",
})
_LOGICAL_OPERATORS = frozenset({"$and", "$or", "$nor"})


def set_driver_option(name: str, value: Any) -> None:
    """Set a process-wide driver option."""
    if name not in _DRIVER_OPTIONS:
        raise KeyError(f"Unknown driver option '{name}'")
    _DRIVER_OPTIONS[name] = value
    logger.debug("driver_option_set", option=name, value=value)


def get_driver_option(name: str) -> Any:
    return _DRIVER_OPTIONS[name]


def validate_filter(query: Mapping[str, Any]) -> Mapping[str, Any]:
    """
    Check a query filter against strict query validation.

    Returns the filter unchanged. With ``strict_query`` off every filter
    passes.

    Raises:
        StrictQueryError: a top-level key is an unknown ``$`` operator
    """
    if not _DRIVER_OPTIONS["strict_query"]:
        return query

    for key, value in query.items():
        if not key.startswith("$"):
            continue
        if key not in _TOP_LEVEL_OPERATORS:
            raise StrictQueryError(key)
        if key in _LOGICAL_OPERATORS:
            # $and/$or/$nor take a list of sub-filters
            if not isinstance(value, (list, tuple)) or not all(
                isinstance(clause, Mapping) for clause in value
            ):
                raise StrictQueryError(key)
            for clause in value:
                validate_filter(clause)
    return query


# ---------------------------------------------------------------------------
# Connection handle
# ---------------------------------------------------------------------------

class MongoDatabase(ManagedResource):
    """
    Owned connection to MongoDB.

    The client is created in ``open`` (never at construction) so a bad URI
    surfaces as a connection error on the startup path.
    """

    name = "mongodb"

    def __init__(
        self,
        uri: str,
        database: str = "onchain_agent",
        server_selection_timeout_ms: int = 30000,
        app_name: Optional[str] = None,
        client_factory: Callable[..., Any] = AsyncMongoClient,
    ) -> None:
        super().__init__()
        self._uri = uri
        self._database_name = database
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._app_name = app_name
        self._client_factory = client_factory
        self.client: Optional[Any] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoDatabase":
        return cls(
            uri=settings.mongodb_uri,
            database=settings.MONGODB_DATABASE,
            server_selection_timeout_ms=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
            app_name=settings.APP_NAME,
        )

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def open(self) -> None:
        """
        Connect and confirm the server is reachable.

        Raises:
            StorageConnectionError: the URI is invalid or the server did not
                answer within the server selection timeout
        """
        self.state = ResourceState.OPENING
        self.safe_log("connecting_to_mongodb", database=self._database_name)

        try:
            kwargs = {"serverSelectionTimeoutMS": self._server_selection_timeout_ms}
            if self._app_name:
                kwargs["appname"] = self._app_name
            self.client = self._client_factory(self._uri, **kwargs)
            await self.client.admin.command("ping")
        except (PyMongoError, ValueError) as e:
            self._mark_failed(e)
            await self._discard_client()
            raise StorageConnectionError(str(e)) from e

        self._mark_open()
        self.metadata.update({
            "database": self.database.name,
            "strict_query": get_driver_option("strict_query"),
        })
        self.safe_log("mongodb_connected", **self.metadata)

    async def close(self) -> None:
        """
        Close the connection. Closing twice is a no-op.

        Raises:
            StorageCloseError: the driver failed while closing
        """
        if self.client is None:
            self.safe_log("mongodb_already_closed")
            return

        client, self.client = self.client, None
        self.state = ResourceState.CLOSING
        try:
            await client.close()
        except PyMongoError as e:
            self._mark_failed(e)
            raise StorageCloseError(str(e)) from e

        self._mark_closed()
        self.safe_log("mongodb_connection_closed")

    async def _discard_client(self) -> None:
        client, self.client = self.client, None
        if client is None:
            return
        try:
            await client.close()
        except PyMongoError as e:
            self.log_error("mongodb_discard_failed", e)

    # ------------------------------------------------------------------ #
    # Access
    # ------------------------------------------------------------------ #

    @property
    def database(self):
        """Database named in the URI, else the configured default."""
        if self.client is None:
            raise RuntimeError("MongoDB connection is not open")
        return self.client.get_default_database(default=self._database_name)

    async def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            await self.client.admin.command("ping")
        except PyMongoError as e:
            self.log_error("mongodb_ping_failed", e)
            return False
        return True

    async def find_one(self, collection: str, query: Mapping[str, Any]) -> Optional[dict]:
        return await self.database[collection].find_one(validate_filter(query))


__all__ = [
    "MongoDatabase",
    "set_driver_option",
    "get_driver_option",
    "validate_filter",
]
