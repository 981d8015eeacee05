"""Transport adapters for consultroom.

The session core talks to the realtime connection through four calls:
`join(room, payload)`, `emit(event_name, payload)`, `on(event_name, handler)`
and `off(event_name, handler)`. A python-socketio client keeps one handler per
event name, so the adapters keep their own handler lists and fan events out.
That lets several sessions share one connection without touching each
other's handlers.
"""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

import socketio

from ..utils.event_utils import EventType

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]

# Connection failures are owned by the transport and reach callers unchanged
TransportUnavailable = socketio.exceptions.ConnectionError


class Transport(ABC):
    """Base class providing multi-handler registration and dispatch."""

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = {}
        self._handlers_lock = threading.RLock()

    def on(self, event_name: str, handler: Handler) -> None:
        """Register a handler instance for an event."""
        with self._handlers_lock:
            handlers = self._handlers.setdefault(event_name, [])
            first = not handlers
            handlers.append(handler)
        if first:
            self._install_dispatcher(event_name)

    def off(self, event_name: str, handler: Handler) -> None:
        """Unregister one registration of exactly this handler instance."""
        with self._handlers_lock:
            handlers = self._handlers.get(event_name, [])
            for index, registered in enumerate(handlers):
                if registered is handler:
                    del handlers[index]
                    return
        logger.debug(f"off('{event_name}') called for a handler that is not registered")

    def handler_count(self, event_name: str) -> int:
        with self._handlers_lock:
            return len(self._handlers.get(event_name, []))

    def dispatch(self, event_name: str, payload: Any) -> None:
        """Deliver a payload to every handler registered for the event."""
        with self._handlers_lock:
            handlers = list(self._handlers.get(event_name, []))
        for handler in handlers:
            handler(payload)

    def join(self, room: str, payload: Dict[str, Any]) -> None:
        """Ask the server to put this connection in a room."""
        self.emit(EventType.JOIN_ROOM.value, payload)

    @abstractmethod
    def emit(self, event_name: str, payload: Dict[str, Any]) -> None:
        """Send an event to the server."""

    def _install_dispatcher(self, event_name: str) -> None:
        """Hook called the first time an event gets a handler."""


class SocketIOTransport(Transport):
    """Transport backed by a python-socketio client.

    Emissions made while disconnected are queued and sent, in order, once
    the connection is up.
    """

    def __init__(self, sio: Optional[socketio.Client] = None):
        super().__init__()
        self.sio = sio or socketio.Client(logger=False, engineio_logger=False)
        self._pending: List[Tuple[str, Dict[str, Any]]] = []
        self._pending_lock = threading.Lock()
        self._installed = set()
        self.sio.on('connect', self._on_connect)
        self.sio.on('disconnect', self._on_disconnect)

    @property
    def connected(self) -> bool:
        return bool(self.sio.connected)

    @property
    def pending(self) -> List[Tuple[str, Dict[str, Any]]]:
        with self._pending_lock:
            return list(self._pending)

    def connect(self, url: str, **kwargs) -> None:
        """Connect to the server. Connection errors propagate."""
        headers = kwargs.pop('headers', {'User-Agent': 'Python/consultroom-client'})
        transports = kwargs.pop('transports', ['websocket'])
        logger.info(f"Connecting to {url}")
        self.sio.connect(url, headers=headers, transports=transports, **kwargs)
        self._flush_pending()

    def disconnect(self) -> None:
        if self.sio.connected:
            self.sio.disconnect()

    def wait(self) -> None:
        self.sio.wait()

    def emit(self, event_name: str, payload: Dict[str, Any]) -> None:
        with self._pending_lock:
            if not self.sio.connected or self._pending:
                logger.debug(f"Not connected, queueing '{event_name}'")
                self._pending.append((event_name, payload))
                return
        self.sio.emit(event_name, payload)

    def _install_dispatcher(self, event_name: str) -> None:
        if event_name in self._installed:
            return
        self._installed.add(event_name)

        def dispatcher(data=None, *args):
            self.dispatch(event_name, data)

        self.sio.on(event_name, dispatcher)

    def _on_connect(self):
        logger.info("Connected to server")
        self._flush_pending()

    def _on_disconnect(self, *args):
        logger.warning("Disconnected from server")

    def _flush_pending(self) -> None:
        with self._pending_lock:
            pending, self._pending = self._pending, []
            for event_name, payload in pending:
                logger.debug(f"Sending queued '{event_name}'")
                self.sio.emit(event_name, payload)


class InMemoryTransport(Transport):
    """Loopback transport that records emissions and delivers events on demand."""

    def __init__(self):
        super().__init__()
        self.emitted: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, event_name: str, payload: Dict[str, Any]) -> None:
        self.emitted.append((event_name, dict(payload)))

    def deliver(self, event_name: str, payload: Any) -> None:
        self.dispatch(event_name, payload)

    def emitted_named(self, event_name: str) -> List[Dict[str, Any]]:
        return [payload for name, payload in self.emitted if name == event_name]
