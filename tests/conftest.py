# tests/conftest.py

from __future__ import annotations

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from aria2ctl.api.client import Aria2Client
from aria2ctl.models.endpoint import Endpoint

from .fake_daemon import FakeDaemon
from .fakes import FakeTransport


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def client(transport: FakeTransport) -> Aria2Client:
    """Client wired to the in-memory transport; nothing touches the network."""
    return Aria2Client(transport=transport)


@pytest_asyncio.fixture()
async def daemon():
    """
    A fake daemon served over real HTTP on a free local port.

    The fixture yields the FakeDaemon with an ``endpoint`` attribute pointing at it.
    """
    fake = FakeDaemon()
    server = TestServer(fake.make_app())
    await server.start_server()
    fake.endpoint = Endpoint(server.host, server.port, "/jsonrpc")
    try:
        yield fake
    finally:
        await server.close()


@pytest_asyncio.fixture()
async def serve_handler():
    """Serves a raw aiohttp handler at /jsonrpc and returns its Endpoint."""
    servers: list[TestServer] = []

    async def _serve(handler) -> Endpoint:
        app = web.Application()
        app.router.add_post("/jsonrpc", handler)
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return Endpoint(server.host, server.port, "/jsonrpc")

    try:
        yield _serve
    finally:
        for server in servers:
            await server.close()
