"""Tests for the transcript reducer."""
import random
from unittest.mock import Mock

import pytest

from consultroom.core.message_system import (
    EntryOrigin, Transcript, TranscriptEntry, TranscriptFormatter, TranscriptReducer, reduce_transcript
)
from consultroom.utils.event_utils import ChatMessage, ChatResponse, ServerMessage


def test_empty_transcript():
    transcript = Transcript()
    assert len(transcript) == 0
    assert transcript.next_sequence == 0


def test_append_returns_new_transcript():
    empty = Transcript()
    one = empty.append(EntryOrigin.SYSTEM, None, "welcome")

    assert len(empty) == 0
    assert one.entries == (TranscriptEntry(EntryOrigin.SYSTEM, None, "welcome", 0),)


def test_sequences_strictly_increase_from_zero():
    reducer = TranscriptReducer()
    rng = random.Random(7)
    calls = 25
    for i in range(calls):
        if rng.random() < 0.5:
            reducer.on_system_notice(f"notice {i}")
        else:
            reducer.on_peer_message("Bob", f"message {i}")

    assert len(reducer) == calls
    assert [entry.sequence for entry in reducer.entries] == list(range(calls))


def test_welcome_then_peer_scenario():
    reducer = TranscriptReducer()
    reducer.on_system_notice("welcome")
    reducer.on_peer_message("Bob", "hi")

    assert list(reducer.entries) == [
        TranscriptEntry(EntryOrigin.SYSTEM, None, "welcome", 0),
        TranscriptEntry(EntryOrigin.PEER, "Bob", "hi", 1),
    ]


def test_replaying_events_is_deterministic():
    events = [
        ServerMessage(msg="welcome"),
        ChatResponse(username="Bob", msg="hi"),
        ChatResponse(username="Alice", msg="hello"),
        ServerMessage(msg="Carol has joined the room R1."),
    ]

    first = Transcript()
    second = Transcript()
    for event in events:
        first = reduce_transcript(first, event)
    for event in events:
        second = reduce_transcript(second, event)

    assert first == second


def test_redelivered_event_is_appended_again():
    reducer = TranscriptReducer()
    reducer.on_peer_message("Bob", "hi")
    reducer.on_peer_message("Bob", "hi")

    assert [(e.author, e.text, e.sequence) for e in reducer.entries] == [("Bob", "hi", 0), ("Bob", "hi", 1)]


def test_existing_entries_are_untouched_by_append():
    reducer = TranscriptReducer()
    first = reducer.on_system_notice("welcome")
    snapshot = reducer.transcript

    reducer.on_peer_message("Bob", "hi")

    assert reducer.entries[0] is first
    assert len(snapshot) == 1


def test_reduce_rejects_outbound_event():
    with pytest.raises(TypeError):
        reduce_transcript(Transcript(), ChatMessage(username="Alice", room="R1", msg="hi"))


def test_listeners_run_after_append():
    reducer = TranscriptReducer()
    seen = []

    def listener(entry):
        seen.append((entry, len(reducer)))

    reducer.add_listener(listener)
    entry = reducer.on_system_notice("welcome")

    assert seen == [(entry, 1)]


def test_failing_listener_does_not_break_transcript():
    reducer = TranscriptReducer()
    broken = Mock(side_effect=RuntimeError("boom"))
    healthy = Mock()
    reducer.add_listener(broken)
    reducer.add_listener(healthy)

    reducer.on_peer_message("Bob", "hi")

    assert len(reducer) == 1
    healthy.assert_called_once_with(reducer.entries[0])


def test_remove_listener():
    reducer = TranscriptReducer()
    listener = Mock()
    reducer.add_listener(listener)
    reducer.remove_listener(listener)
    reducer.remove_listener(listener)

    reducer.on_system_notice("welcome")
    listener.assert_not_called()


def test_formatter():
    system = TranscriptEntry(EntryOrigin.SYSTEM, None, "welcome", 0)
    peer = TranscriptEntry(EntryOrigin.PEER, "Bob", "hi", 1)

    assert TranscriptFormatter.format_line(system) == "[SYSTEM] welcome"
    assert TranscriptFormatter.format_line(peer) == "Bob: hi"
    assert TranscriptFormatter.format_for_log(system) == "#0 [SYSTEM] -: welcome"
    assert TranscriptFormatter.format_all(Transcript((system, peer))) == ["[SYSTEM] welcome", "Bob: hi"]
