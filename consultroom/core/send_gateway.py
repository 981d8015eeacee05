"""Outbound actions for a consultroom session.

Two input surfaces feed the room: free chat and structured diagnostic notes.
Each has its own draft buffer, cleared only after its text was emitted.
"""
import logging
import time
from typing import Callable, Optional

from .session_binder import SessionBinder
from ..utils.message_utils import (
    STRUCTURED_NOTE_PREFIX, create_chat_message, format_structured_note, is_blank
)

logger = logging.getLogger(__name__)


class ValidationError(ValueError):
    """A required-content action was submitted without content."""


class DraftBuffer:
    """Unsent text of one input surface."""

    def __init__(self, name: str):
        self.name = name
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    @property
    def is_blank(self) -> bool:
        return is_blank(self._text)

    def set(self, text: str) -> None:
        self._text = text

    def clear(self) -> None:
        self._text = ""

    def __repr__(self) -> str:
        return f"DraftBuffer({self.name!r}, {self._text!r})"


class SendGateway:
    """Validates, optionally throttles, and emits a session's outbound chat."""

    def __init__(self,
                 binder: SessionBinder,
                 structured_prefix: str = STRUCTURED_NOTE_PREFIX,
                 min_interval: float = 0.0,
                 clock: Callable[[], float] = time.monotonic):
        self.binder = binder
        self.structured_prefix = structured_prefix
        self.min_interval = min_interval
        self._clock = clock
        self._last_sent: Optional[float] = None
        self.chat_draft = DraftBuffer("chat")
        self.note_draft = DraftBuffer("note")

    def send_chat(self, text: Optional[str] = None) -> bool:
        """
        Send free chat text (the chat draft when text is None).

        Blank text is ignored silently.

        Returns:
            True if a chat_message was emitted.
        """
        if text is None:
            text = self.chat_draft.text
        if is_blank(text):
            return False
        if not self._emit(text):
            return False
        self.chat_draft.clear()
        return True

    def send_structured_note(self, text: Optional[str] = None) -> bool:
        """
        Send a structured diagnostic note (the note draft when text is None).

        Raises:
            ValidationError: If the note is blank. Nothing is emitted.

        Returns:
            True if the note was emitted.
        """
        if text is None:
            text = self.note_draft.text
        if is_blank(text):
            raise ValidationError("Please describe the symptoms before sending.")
        if not self._emit(format_structured_note(text, self.structured_prefix)):
            return False
        self.note_draft.clear()
        return True

    def _emit(self, msg: str) -> bool:
        identity = self.binder.identity
        if not self.binder.is_joined or identity is None:
            logger.warning(f"Not sending message: session is {self.binder.state.value}")
            return False

        now = self._clock()
        if self.min_interval > 0 and self._last_sent is not None \
                and now - self._last_sent < self.min_interval:
            logger.info(f"Throttled message from {identity.username}: "
                        f"{now - self._last_sent:.2f}s since last send, minimum {self.min_interval}s")
            return False

        if not self.binder.send(create_chat_message(identity, msg)):
            return False
        self._last_sent = now
        return True
