"""Event vocabulary shared by the consultroom client and relay server.

Every event that crosses the Socket.IO connection is one of four closed
variants. Inbound events (server -> client) feed the transcript; outbound
events (client -> server) are produced by the session binder and the send
gateway.

    Inbound:   server_message {msg}
               chat_response  {username, msg}
    Outbound:  join_room      {username, room}
               chat_message   {username, room, msg}
"""
import enum
from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, Mapping, Tuple, Union


class EventType(enum.Enum):
    """
    Enumerates the event names exchanged via Socket.IO.
    """
    # Server -> Client
    SERVER_MESSAGE = "server_message"  # Payload: {"msg": str}
    CHAT_RESPONSE = "chat_response"  # Payload: {"username": str, "msg": str}

    # Client -> Server
    JOIN_ROOM = "join_room"  # Payload: {"username": str, "room": str}
    CHAT_MESSAGE = "chat_message"  # Payload: {"username": str, "room": str, "msg": str}


class EventPayloadError(ValueError):
    """Raised when a wire payload does not match its event's shape."""


def _require_str(payload: Mapping[str, Any], key: str, event_type: EventType) -> str:
    if not isinstance(payload, Mapping):
        raise EventPayloadError(f"{event_type.value}: payload must be an object, got {type(payload).__name__}")
    value = payload.get(key)
    if not isinstance(value, str):
        raise EventPayloadError(f"{event_type.value}: field '{key}' must be a string, got {value!r}")
    return value


class _WireEvent:
    """Common payload conversion for the event dataclasses."""
    event_type: ClassVar[EventType]

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]):
        values = {f.name: _require_str(payload, f.name, cls.event_type) for f in fields(cls)}
        return cls(**values)

    def to_payload(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ServerMessage(_WireEvent):
    """System notice broadcast by the room server."""
    event_type: ClassVar[EventType] = EventType.SERVER_MESSAGE
    msg: str


@dataclass(frozen=True)
class ChatResponse(_WireEvent):
    """Chat line relayed by the room server on behalf of a peer."""
    event_type: ClassVar[EventType] = EventType.CHAT_RESPONSE
    username: str
    msg: str


@dataclass(frozen=True)
class JoinRoom(_WireEvent):
    """Request to join a room."""
    event_type: ClassVar[EventType] = EventType.JOIN_ROOM
    username: str
    room: str


@dataclass(frozen=True)
class ChatMessage(_WireEvent):
    """Chat line sent to a room."""
    event_type: ClassVar[EventType] = EventType.CHAT_MESSAGE
    username: str
    room: str
    msg: str


InboundEvent = Union[ServerMessage, ChatResponse]
OutboundEvent = Union[JoinRoom, ChatMessage]

INBOUND_EVENT_TYPES = {
    EventType.SERVER_MESSAGE: ServerMessage,
    EventType.CHAT_RESPONSE: ChatResponse,
}

OUTBOUND_EVENT_TYPES = {
    EventType.JOIN_ROOM: JoinRoom,
    EventType.CHAT_MESSAGE: ChatMessage,
}


def parse_inbound(event_name: Union[str, EventType], payload: Mapping[str, Any]) -> InboundEvent:
    """
    Convert a raw inbound Socket.IO event into its typed variant.

    Args:
        event_name: The Socket.IO event name (or its EventType).
        payload: The decoded event payload.

    Returns:
        A ServerMessage or ChatResponse.

    Raises:
        EventPayloadError: If the name is not an inbound event or the payload
            is missing a required field.
    """
    try:
        event_type = EventType(event_name)
    except ValueError:
        raise EventPayloadError(f"Unknown event name: {event_name!r}") from None
    event_cls = INBOUND_EVENT_TYPES.get(event_type)
    if event_cls is None:
        raise EventPayloadError(f"'{event_type.value}' is not an inbound event")
    return event_cls.from_payload(payload)


def parse_outbound(event_name: Union[str, EventType], payload: Mapping[str, Any]) -> OutboundEvent:
    """Server-side counterpart of parse_inbound."""
    try:
        event_type = EventType(event_name)
    except ValueError:
        raise EventPayloadError(f"Unknown event name: {event_name!r}") from None
    event_cls = OUTBOUND_EVENT_TYPES.get(event_type)
    if event_cls is None:
        raise EventPayloadError(f"'{event_type.value}' is not an outbound event")
    return event_cls.from_payload(payload)


def to_wire(event: Union[InboundEvent, OutboundEvent]) -> Tuple[str, Dict[str, str]]:
    """Return the (event name, payload) pair to hand to Socket.IO."""
    return event.event_type.value, event.to_payload()
