"""Tests for the transport adapters."""
from unittest.mock import Mock, call

import pytest

from consultroom.socketio_server.transport import InMemoryTransport, SocketIOTransport


@pytest.fixture
def mock_sio():
    """Provide a mock python-socketio client."""
    sio = Mock()
    sio.connected = False
    return sio


def registered(sio, event_name):
    """Return the callable the transport installed on the socket for an event."""
    for args, _ in sio.on.call_args_list:
        if args[0] == event_name:
            return args[1]
    raise AssertionError(f"No handler installed for {event_name}")


def test_off_removes_only_the_given_instance():
    transport = InMemoryTransport()
    first, second = Mock(), Mock()
    transport.on("server_message", first)
    transport.on("server_message", second)

    transport.off("server_message", first)
    transport.deliver("server_message", {"msg": "x"})

    first.assert_not_called()
    second.assert_called_once_with({"msg": "x"})


def test_off_unknown_handler_is_ignored():
    transport = InMemoryTransport()
    transport.on("server_message", Mock())
    transport.off("server_message", Mock())
    transport.off("chat_response", Mock())
    assert transport.handler_count("server_message") == 1


def test_dispatch_preserves_registration_order():
    transport = InMemoryTransport()
    calls = []
    transport.on("chat_response", lambda payload: calls.append("a"))
    transport.on("chat_response", lambda payload: calls.append("b"))
    transport.deliver("chat_response", {})
    assert calls == ["a", "b"]


def test_handler_removed_during_dispatch_still_completes_round():
    transport = InMemoryTransport()
    second = Mock()

    def first(payload):
        transport.off("chat_response", second)

    transport.on("chat_response", first)
    transport.on("chat_response", second)
    transport.deliver("chat_response", {})
    transport.deliver("chat_response", {})

    second.assert_called_once()


def test_join_emits_join_room():
    transport = InMemoryTransport()
    transport.join("R1", {"username": "Alice", "room": "R1"})
    assert transport.emitted == [("join_room", {"username": "Alice", "room": "R1"})]


def test_socketio_installs_one_dispatcher_per_event(mock_sio):
    transport = SocketIOTransport(sio=mock_sio)
    a, b = Mock(), Mock()
    transport.on("server_message", a)
    transport.on("server_message", b)
    transport.off("server_message", a)
    transport.off("server_message", b)
    transport.on("server_message", a)

    installed = [args[0] for args, _ in mock_sio.on.call_args_list]
    assert installed.count("server_message") == 1

    registered(mock_sio, "server_message")({"msg": "hello"})
    a.assert_called_once_with({"msg": "hello"})
    b.assert_not_called()


def test_socketio_emit_when_connected(mock_sio):
    mock_sio.connected = True
    transport = SocketIOTransport(sio=mock_sio)

    transport.emit("chat_message", {"msg": "hi"})

    mock_sio.emit.assert_called_once_with("chat_message", {"msg": "hi"})


def test_socketio_queues_until_connected(mock_sio):
    transport = SocketIOTransport(sio=mock_sio)
    transport.join("R1", {"username": "Alice", "room": "R1"})
    transport.emit("chat_message", {"msg": "hi"})

    mock_sio.emit.assert_not_called()
    assert len(transport.pending) == 2

    mock_sio.connected = True
    registered(mock_sio, "connect")()

    assert mock_sio.emit.call_args_list == [
        call("join_room", {"username": "Alice", "room": "R1"}),
        call("chat_message", {"msg": "hi"}),
    ]
    assert transport.pending == []


def test_socketio_connect_flushes_queue(mock_sio):
    transport = SocketIOTransport(sio=mock_sio)
    transport.emit("join_room", {"username": "Alice", "room": "R1"})

    def connect(url, **kwargs):
        mock_sio.connected = True

    mock_sio.connect.side_effect = connect
    transport.connect("http://localhost:5000")

    mock_sio.connect.assert_called_once()
    assert mock_sio.connect.call_args[0][0] == "http://localhost:5000"
    assert mock_sio.connect.call_args[1]["transports"] == ["websocket"]
    mock_sio.emit.assert_called_once_with("join_room", {"username": "Alice", "room": "R1"})


def test_socketio_connect_error_propagates(mock_sio):
    import socketio
    mock_sio.connect.side_effect = socketio.exceptions.ConnectionError("refused")
    transport = SocketIOTransport(sio=mock_sio)

    with pytest.raises(socketio.exceptions.ConnectionError):
        transport.connect("http://localhost:9999")


def test_socketio_disconnect(mock_sio):
    transport = SocketIOTransport(sio=mock_sio)
    transport.disconnect()
    mock_sio.disconnect.assert_not_called()

    mock_sio.connected = True
    transport.disconnect()
    mock_sio.disconnect.assert_called_once()
