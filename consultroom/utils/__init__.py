"""Utility functions and helpers for consultroom"""
from .path_config import (
    get_app_root,
    get_config_dir,
    get_client_config_file,
    get_logs_dir,
)
from .event_utils import EventType, EventPayloadError, parse_inbound, to_wire
from .message_utils import STRUCTURED_NOTE_PREFIX, format_structured_note, is_blank

__all__ = [
    'get_app_root',
    'get_config_dir',
    'get_client_config_file',
    'get_logs_dir',
    'EventType',
    'EventPayloadError',
    'parse_inbound',
    'to_wire',
    'STRUCTURED_NOTE_PREFIX',
    'format_structured_note',
    'is_blank',
]
