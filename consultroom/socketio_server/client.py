#!/usr/bin/env python3
"""consultroom Socket.IO chat client

Terminal client for one participant of a consultation room. It connects to the
room server, joins the room once, prints the room transcript as it grows and
sends what the user types.

Input:
- `<text>`        send a chat message
- `/note <text>`  send a structured diagnostic note
- `/quit`         leave the room and exit
"""
import os
import sys
import logging
import argparse
from typing import Callable, List, Optional

from ..core.message_system import TranscriptEntry, TranscriptFormatter, TranscriptReducer
from ..core.send_gateway import SendGateway, ValidationError
from ..core.session_binder import Identity, Role, SessionBinder
from ..utils.config_loader import ConfigManager, config as default_config
from ..utils.path_config import get_logs_dir
from .transport import SocketIOTransport, TransportUnavailable

logger = logging.getLogger(__name__)

NOTE_COMMAND = "/note"
QUIT_COMMAND = "/quit"


def setup_logging(level="INFO", log_file: Optional[str] = None,
                  fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s") -> logging.Logger:
    """Configure the consultroom logger."""
    root = logging.getLogger("consultroom")
    root.setLevel(level)
    root.handlers = []  # Remove any existing handlers

    formatter = logging.Formatter(fmt)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(os.path.join(get_logs_dir(), log_file))
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    return root


class RoomChatClient:
    def __init__(self, identity: Identity, transport=None, config: Optional[ConfigManager] = None,
                 output: Callable[[str], None] = print):
        self.identity = identity
        self.config = config or default_config
        self.transport = transport or SocketIOTransport()
        self.output = output
        self.binder = SessionBinder(self.transport, reducer_factory=self._new_transcript)
        self.gateway = SendGateway(
            self.binder,
            structured_prefix=self.config.get('session', 'structured_note_prefix'),
            min_interval=float(self.config.get('session', 'min_send_interval', default=0.0)),
        )
        self.running = False

    def start(self, url: Optional[str] = None) -> None:
        """Connect (when the transport can) and join the room."""
        url = url or self.config.get('server', 'url')
        self.output(f"{self.identity.role.value}: {self.identity.username}")
        self.output(f"Room: {self.identity.room}")
        if hasattr(self.transport, 'connect'):
            self.transport.connect(url)
        self.binder.activate(self.identity)
        self.running = True

    def _new_transcript(self) -> TranscriptReducer:
        reducer = TranscriptReducer()
        reducer.add_listener(self.on_entry)
        return reducer

    def on_entry(self, entry: TranscriptEntry) -> None:
        logger.debug(TranscriptFormatter.format_for_log(entry))
        self.output(TranscriptFormatter.format_line(entry))

    def transcript_lines(self) -> List[str]:
        """The current room transcript as display lines."""
        reducer = self.binder.transcript
        if reducer is None:
            return []
        return TranscriptFormatter.format_all(reducer.transcript)

    def handle_input(self, line: str) -> bool:
        """
        Handle one line typed by the user.

        Returns:
            False once the user asked to quit.
        """
        text = line.rstrip("\r\n")
        if text.strip() == QUIT_COMMAND:
            self.stop()
            return False

        if text.startswith(NOTE_COMMAND + " ") or text == NOTE_COMMAND:
            self.gateway.note_draft.set(text[len(NOTE_COMMAND) + 1:])
            try:
                if not self.gateway.send_structured_note():
                    self.output("Note not sent.")
            except ValidationError as e:
                self.output(str(e))
            return True

        self.gateway.chat_draft.set(text)
        self.gateway.send_chat()
        return True

    def stop(self) -> None:
        """Leave the room and disconnect."""
        if self.binder.is_joined:
            self.binder.deactivate()
        if self.running and hasattr(self.transport, 'disconnect'):
            self.transport.disconnect()
        self.running = False


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description='consultroom chat client')
    parser.add_argument('--username', required=True, help='Display name in the room')
    parser.add_argument('--room', required=True, help='Room to join')
    parser.add_argument('--role', default=Role.DOCTOR.value,
                        help='Participant role (Doctor or Pharmacist)')
    parser.add_argument('--url', default=None, help='Room server URL')
    parser.add_argument('--log-file', default=None, help='Also log to this file in the logs directory')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    return parser.parse_args(argv)


def main(argv=None, stdin=None):
    """Main entry point."""
    args = parse_args(argv)
    level = "DEBUG" if args.debug else default_config.get('logging', 'level', default='INFO')
    setup_logging(level, args.log_file, default_config.get('logging', 'format'))

    try:
        identity = Identity(username=args.username, room=args.room, role=Role.parse(args.role))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    client = RoomChatClient(identity)
    try:
        client.start(args.url)
    except TransportUnavailable as e:
        logger.error(f"Could not connect to room server: {e}")
        return 1

    try:
        for line in (stdin or sys.stdin):
            if not client.handle_input(line):
                break
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    finally:
        client.stop()
    return 0


if __name__ == '__main__':
    sys.exit(main())
