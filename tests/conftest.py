"""Test configuration and fixtures for consultroom tests."""
import pytest
import pytest_asyncio
import socketio
from aiohttp import web

from consultroom.core.send_gateway import SendGateway
from consultroom.core.session_binder import Identity, Role, SessionBinder
from consultroom.socketio_server.server import RelayServer
from consultroom.socketio_server.transport import InMemoryTransport

TEST_HOST = "127.0.0.1"
TEST_PORT = 5349  # Different port for testing


@pytest.fixture
def transport():
    """Provide a loopback transport."""
    return InMemoryTransport()


@pytest.fixture
def alice():
    return Identity(username="Alice", room="R1", role=Role.DOCTOR)


@pytest.fixture
def bob():
    return Identity(username="Bob", room="R1", role=Role.PHARMACIST)


@pytest.fixture
def binder(transport):
    return SessionBinder(transport)


@pytest.fixture
def joined_binder(binder, alice):
    """Provide a binder already joined as Alice."""
    binder.activate(alice)
    yield binder
    if binder.is_joined:
        binder.deactivate()


@pytest.fixture
def gateway(joined_binder):
    return SendGateway(joined_binder)


@pytest.fixture
def test_config(tmp_path):
    """Provide a configuration manager isolated from the environment."""
    from consultroom.utils.config_loader import ConfigManager
    return ConfigManager(config_dir=str(tmp_path), load_env=False)


@pytest_asyncio.fixture
async def server_app():
    """Provide a running relay server."""
    relay = RelayServer()
    runner = web.AppRunner(relay.create_app())
    try:
        await runner.setup()
        site = web.TCPSite(runner, TEST_HOST, TEST_PORT)
        await site.start()
        yield relay, f"http://{TEST_HOST}:{TEST_PORT}"
    finally:
        await runner.cleanup()


@pytest_asyncio.fixture
async def client_sio():
    """Provide test Socket.IO client."""
    client = socketio.AsyncClient(logger=False, engineio_logger=False)
    yield client
    if client.connected:
        await client.disconnect()
