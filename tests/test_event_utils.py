"""Tests for the wire event vocabulary."""
import pytest

from consultroom.utils.event_utils import (
    ChatMessage, ChatResponse, EventPayloadError, EventType, JoinRoom, ServerMessage,
    parse_inbound, parse_outbound, to_wire
)
from consultroom.utils.message_utils import (
    create_join_notice, format_structured_note, is_blank, STRUCTURED_NOTE_PREFIX
)


def test_parse_inbound_server_message():
    assert parse_inbound("server_message", {"msg": "welcome"}) == ServerMessage(msg="welcome")


def test_parse_inbound_chat_response_ignores_extra_fields():
    event = parse_inbound(EventType.CHAT_RESPONSE, {"username": "Bob", "msg": "hi", "room": "R1"})
    assert event == ChatResponse(username="Bob", msg="hi")


@pytest.mark.parametrize("name, payload", [
    ("server_message", {}),
    ("server_message", {"msg": 3}),
    ("chat_response", {"msg": "hi"}),
    ("chat_response", "hi"),
    ("chat_message", {"username": "a", "room": "r", "msg": "m"}),
    ("nonsense", {"msg": "hi"}),
])
def test_parse_inbound_rejects(name, payload):
    with pytest.raises(EventPayloadError):
        parse_inbound(name, payload)


def test_parse_outbound():
    assert parse_outbound("join_room", {"username": "Alice", "room": "R1"}) == JoinRoom("Alice", "R1")
    with pytest.raises(EventPayloadError):
        parse_outbound("server_message", {"msg": "x"})


def test_to_wire():
    assert to_wire(ChatMessage(username="Alice", room="R1", msg="hi")) == (
        "chat_message", {"username": "Alice", "room": "R1", "msg": "hi"}
    )
    assert to_wire(JoinRoom(username="Alice", room="R1")) == ("join_room", {"username": "Alice", "room": "R1"})


def test_blank_detection():
    assert is_blank("")
    assert is_blank("  \n")
    assert is_blank(None)
    assert not is_blank(" x ")


def test_structured_note_format():
    assert format_structured_note(" fever ") == STRUCTURED_NOTE_PREFIX + " fever "


def test_join_notice():
    assert create_join_notice("Alice", "R1").msg == "Alice has joined the room R1."
