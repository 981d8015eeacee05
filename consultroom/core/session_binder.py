"""Session binding for consultroom.

A SessionBinder puts one client identity into one room and owns every inbound
subscription that membership needs. Joining is idempotent for an unchanged
identity; changing identity tears the previous membership down completely
before joining again.

    UNJOINED -> JOINING -> JOINED -> LEAVING -> UNJOINED

JOINED is optimistic: it is entered as soon as the join request has been
handed to the transport, without waiting for the server.
"""
import enum
import logging
import threading
import warnings
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Tuple

from .message_system import TranscriptReducer
from ..utils.event_utils import EventPayloadError, EventType, OutboundEvent, parse_inbound, to_wire
from ..utils.message_utils import create_join_room_message

logger = logging.getLogger(__name__)


class Role(enum.Enum):
    """Participant roles."""
    DOCTOR = "Doctor"
    PHARMACIST = "Pharmacist"

    @classmethod
    def parse(cls, value) -> "Role":
        """Accept a Role, its value or name in any case, or the French role label."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {
            "medecin": cls.DOCTOR,
            "médecin": cls.DOCTOR,
            "pharmacien": cls.PHARMACIST,
        }
        for role in cls:
            if key in (role.value.lower(), role.name.lower()):
                return role
        if key in aliases:
            return aliases[key]
        raise ValueError(f"Unknown role: {value!r}")


@dataclass(frozen=True)
class Identity:
    """Who the client is and which room it belongs to. Fixed for a client's lifetime."""
    username: str
    room: str
    role: Role

    def same_membership(self, other: Optional["Identity"]) -> bool:
        return other is not None and (self.username, self.room) == (other.username, other.room)


class SessionState(enum.Enum):
    UNJOINED = "unjoined"
    JOINING = "joining"
    JOINED = "joined"
    LEAVING = "leaving"


class SubscriptionLeakRisk(RuntimeWarning):
    """Deactivation was requested without a matching activation."""


class SubscriptionGuard:
    """Scoped set of transport subscriptions.

    close() unregisters exactly the handler instances this guard registered,
    once. Use as a context manager to release on every exit path.
    """

    def __init__(self, transport):
        self._transport = transport
        self._subscriptions: List[Tuple[str, Callable[[Any], None]]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriptions(self) -> Tuple[Tuple[str, Callable[[Any], None]], ...]:
        return tuple(self._subscriptions)

    def subscribe(self, event_name: str, handler: Callable[[Any], None]) -> None:
        if self._closed:
            raise RuntimeError("Cannot subscribe through a closed SubscriptionGuard")
        self._transport.on(event_name, handler)
        self._subscriptions.append((event_name, handler))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        subscriptions, self._subscriptions = self._subscriptions, []
        for event_name, handler in reversed(subscriptions):
            self._transport.off(event_name, handler)

    def __enter__(self) -> "SubscriptionGuard":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SessionBinder:
    """Binds a client identity to a room over a shared transport."""

    INBOUND_EVENTS = (EventType.SERVER_MESSAGE, EventType.CHAT_RESPONSE)

    def __init__(self, transport, reducer_factory: Callable[[], TranscriptReducer] = TranscriptReducer):
        self.transport = transport
        self._reducer_factory = reducer_factory
        self._state = SessionState.UNJOINED
        self._identity: Optional[Identity] = None
        self._reducer: Optional[TranscriptReducer] = None
        self._guard: Optional[SubscriptionGuard] = None
        self._lock = threading.RLock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def transcript(self) -> Optional[TranscriptReducer]:
        return self._reducer

    @property
    def is_joined(self) -> bool:
        return self._state is SessionState.JOINED

    def activate(self, identity: Identity) -> bool:
        """
        Join identity's room and start receiving its events.

        Returns:
            True if a join was issued, False if already joined with the same
            username and room.
        """
        with self._lock:
            if self.is_joined and identity.same_membership(self._identity):
                logger.debug(f"{identity.username} already joined {identity.room}, ignoring activation")
                return False
            if self.is_joined:
                logger.info(f"Identity changed from {self._identity.username}@{self._identity.room} "
                            f"to {identity.username}@{identity.room}, leaving first")
                self.deactivate()

            self._state = SessionState.JOINING
            reducer = self._reducer_factory()
            guard = SubscriptionGuard(self.transport)
            try:
                for event_type in self.INBOUND_EVENTS:
                    guard.subscribe(event_type.value, self._make_handler(event_type, reducer, guard))
                join = create_join_room_message(identity)
                self.transport.join(identity.room, join.to_payload())
            except BaseException:
                guard.close()
                self._state = SessionState.UNJOINED
                logger.error(f"Failed to join room {identity.room} as {identity.username}")
                raise

            self._identity = identity
            self._reducer = reducer
            self._guard = guard
            self._state = SessionState.JOINED
            logger.info(f"{identity.username} ({identity.role.value}) joined room {identity.room}")
            return True

    def deactivate(self) -> bool:
        """
        Leave the room and release this session's subscriptions.

        Returns:
            True if a session was torn down, False if none was active.
        """
        with self._lock:
            if self._state is not SessionState.JOINED or self._guard is None:
                message = f"deactivate() called while {self._state.value}; nothing to release"
                logger.warning(message)
                warnings.warn(message, SubscriptionLeakRisk, stacklevel=2)
                return False

            self._state = SessionState.LEAVING
            try:
                self._guard.close()
            finally:
                self._guard = None
                self._reducer = None
                self._state = SessionState.UNJOINED
            logger.info(f"{self._identity.username} left room {self._identity.room}")
            return True

    def send(self, event: OutboundEvent) -> bool:
        """Emit an outbound event. Only allowed while joined."""
        with self._lock:
            if not self.is_joined:
                logger.warning(f"Dropping '{event.event_type.value}': session is {self._state.value}")
                return False
            event_name, payload = to_wire(event)
            self.transport.emit(event_name, payload)
            return True

    @contextmanager
    def session(self, identity: Identity) -> Iterator[TranscriptReducer]:
        """Activate for the duration of a with-block.

        Only a session started by this block is torn down on exit; entering
        while already joined with the same membership leaves it in place.
        """
        activated = self.activate(identity)
        guard = self._guard
        try:
            yield self._reducer
        finally:
            if activated and self.is_joined and self._guard is guard:
                self.deactivate()

    def _make_handler(self, event_type: EventType, reducer: TranscriptReducer, guard: SubscriptionGuard):
        def handler(payload):
            # Late deliveries to a released subscription are ignored
            if guard.closed:
                return
            try:
                event = parse_inbound(event_type, payload)
            except EventPayloadError as e:
                logger.error(f"Ignoring malformed '{event_type.value}' payload: {e}")
                return
            reducer.handle(event)

        handler.__name__ = f"on_{event_type.value}"
        return handler
