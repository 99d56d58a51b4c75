import socket

import httpx
import pytest

from onchain_agent.api.lifespan.base import ResourceState
from onchain_agent.api.main import create_app
from onchain_agent.api.server import HTTPListener
from onchain_agent.core.exceptions import ListenerBindError
from conftest import make_settings


@pytest.fixture
def app():
    return create_app(make_settings())


class TestHTTPListener:

    @pytest.mark.asyncio
    async def test_serves_routes_until_closed(self, app):
        listener = HTTPListener(app, host="127.0.0.1", port=0)
        await listener.open()
        port = listener.bound_port

        try:
            assert listener.state == ResourceState.OPEN
            async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{port}") as client:
                root = await client.get("/")
                health = await client.get("/health")
            assert root.text == "On-chain Security AI Agent API"
            assert health.json() == {"status": "ok"}
        finally:
            await listener.close()

        assert listener.state == ResourceState.CLOSED
        with pytest.raises(httpx.ConnectError):
            async with httpx.AsyncClient() as client:
                await client.get(f"http://127.0.0.1:{port}/health")

    @pytest.mark.asyncio
    async def test_port_in_use_is_a_bind_error(self, app):
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]

        try:
            listener = HTTPListener(app, host="127.0.0.1", port=port)
            with pytest.raises(ListenerBindError) as exc_info:
                await listener.open()
        finally:
            blocker.close()

        assert exc_info.value.details["port"] == port
        assert listener.state == ResourceState.FAILED

    @pytest.mark.asyncio
    async def test_close_without_open_is_noop(self, app):
        listener = HTTPListener(app, host="127.0.0.1", port=0)
        await listener.close()
        assert listener.state == ResourceState.UNOPENED

    def test_from_settings(self, app):
        listener = HTTPListener.from_settings(app, make_settings(PORT="8081", API_HOST="127.0.0.1"))
        assert (listener.host, listener.port) == ("127.0.0.1", 8081)
