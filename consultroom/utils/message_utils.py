"""Utilities for creating consultroom Socket.IO messages."""

from .event_utils import ChatMessage, JoinRoom, ServerMessage

# Marker that distinguishes a structured diagnostic note from free chat
STRUCTURED_NOTE_PREFIX = "📋 DIAGNOSTIC: "


def is_blank(text) -> bool:
    """True when text is None, empty or whitespace only."""
    return text is None or not text.strip()


def format_structured_note(text: str, prefix: str = STRUCTURED_NOTE_PREFIX) -> str:
    """Prefix a structured note with its marker. The text itself is passed through verbatim."""
    return f"{prefix}{text}"


def create_join_room_message(identity) -> JoinRoom:
    """Creates the join request for an identity's room."""
    return JoinRoom(username=identity.username, room=identity.room)


def create_chat_message(identity, msg: str) -> ChatMessage:
    """Creates a chat message addressed to an identity's room."""
    return ChatMessage(username=identity.username, room=identity.room, msg=msg)


# Used by the relay server
def create_server_notice(msg: str) -> ServerMessage:
    """Creates a system notice."""
    return ServerMessage(msg=msg)


def create_join_notice(username: str, room: str) -> ServerMessage:
    """Creates the notice broadcast when a participant joins a room."""
    return create_server_notice(f"{username} has joined the room {room}.")
