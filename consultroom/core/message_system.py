"""Transcript system for consultroom.

This module turns inbound room events into an ordered, append-only transcript
and formats transcript entries for display. State changes happen in one place
(TranscriptReducer); listeners are notified only after a change completes.
"""
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple
from enum import Enum
import logging
import threading

from ..utils.event_utils import ChatResponse, InboundEvent, ServerMessage

logger = logging.getLogger(__name__)


class EntryOrigin(Enum):
    """Where a transcript entry came from."""
    SYSTEM = "system"
    PEER = "peer"


@dataclass(frozen=True)
class TranscriptEntry:
    """One displayed line of a room transcript."""
    origin: EntryOrigin
    author: Optional[str]
    text: str
    sequence: int


class Transcript:
    """Immutable, ordered sequence of transcript entries.

    `sequence` is a local arrival counter: 0 for the first entry, then one
    greater than the previous entry. Entries are never reordered or pruned.
    """
    __slots__ = ("_entries",)

    def __init__(self, entries: Tuple[TranscriptEntry, ...] = ()):
        self._entries = tuple(entries)

    @property
    def entries(self) -> Tuple[TranscriptEntry, ...]:
        return self._entries

    @property
    def next_sequence(self) -> int:
        if not self._entries:
            return 0
        return self._entries[-1].sequence + 1

    def append(self, origin: EntryOrigin, author: Optional[str], text: str) -> "Transcript":
        """Return a new transcript with one entry added at the end."""
        entry = TranscriptEntry(origin=origin, author=author, text=text, sequence=self.next_sequence)
        return Transcript(self._entries + (entry,))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(self._entries)

    def __getitem__(self, index):
        return self._entries[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Transcript):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"Transcript({list(self._entries)!r})"


def reduce_transcript(transcript: Transcript, event: InboundEvent) -> Transcript:
    """Pure reduction of one inbound event onto a transcript."""
    if isinstance(event, ServerMessage):
        return transcript.append(EntryOrigin.SYSTEM, None, event.msg)
    if isinstance(event, ChatResponse):
        return transcript.append(EntryOrigin.PEER, event.username, event.msg)
    raise TypeError(f"Not an inbound event: {event!r}")


TranscriptListener = Callable[[TranscriptEntry], None]


class TranscriptReducer:
    """Owns the transcript of one session.

    Socket.IO delivers events on its own thread, so every mutation happens
    under a lock. Redelivered events are appended again.
    """

    def __init__(self):
        self._transcript = Transcript()
        self._lock = threading.RLock()
        self._listeners: List[TranscriptListener] = []

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def entries(self) -> Tuple[TranscriptEntry, ...]:
        return self._transcript.entries

    def __len__(self) -> int:
        return len(self._transcript)

    def on_system_notice(self, text: str) -> TranscriptEntry:
        """Append a system notice."""
        return self.handle(ServerMessage(msg=text))

    def on_peer_message(self, author: str, text: str) -> TranscriptEntry:
        """Append a chat line relayed from a peer."""
        return self.handle(ChatResponse(username=author, msg=text))

    def handle(self, event: InboundEvent) -> TranscriptEntry:
        """Apply an inbound event and notify listeners of the new entry."""
        with self._lock:
            self._transcript = reduce_transcript(self._transcript, event)
            entry = self._transcript.entries[-1]
            listeners = list(self._listeners)
        self._notify(listeners, entry)
        return entry

    def add_listener(self, listener: TranscriptListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: TranscriptListener) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def _notify(self, listeners: List[TranscriptListener], entry: TranscriptEntry) -> None:
        for listener in listeners:
            try:
                listener(entry)
            except Exception:
                logger.exception(f"Transcript listener {listener!r} failed on entry #{entry.sequence}")


class TranscriptFormatter:
    """Formats transcript entries for different UI contexts."""

    @staticmethod
    def format_line(entry: TranscriptEntry) -> str:
        """Format an entry the way the chat window shows it."""
        if entry.origin is EntryOrigin.SYSTEM:
            return f"[SYSTEM] {entry.text}"
        return f"{entry.author}: {entry.text}"

    @staticmethod
    def format_for_log(entry: TranscriptEntry) -> str:
        """Format an entry for a log file."""
        author = entry.author if entry.author is not None else "-"
        return f"#{entry.sequence} [{entry.origin.value.upper()}] {author}: {entry.text}"

    @staticmethod
    def format_all(transcript: Transcript) -> List[str]:
        return [TranscriptFormatter.format_line(entry) for entry in transcript]
