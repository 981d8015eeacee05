"""Session core for consultroom.

Components:
- SessionBinder: joins a room once and owns its inbound subscriptions
- TranscriptReducer: appends inbound events to the ordered transcript
- SendGateway: validates and emits outbound chat and structured notes
"""

from .message_system import (
    EntryOrigin, Transcript, TranscriptEntry, TranscriptFormatter, TranscriptReducer, reduce_transcript
)
from .send_gateway import DraftBuffer, SendGateway, ValidationError
from .session_binder import (
    Identity, Role, SessionBinder, SessionState, SubscriptionGuard, SubscriptionLeakRisk
)

__all__ = [
    'EntryOrigin',
    'Transcript',
    'TranscriptEntry',
    'TranscriptFormatter',
    'TranscriptReducer',
    'reduce_transcript',
    'DraftBuffer',
    'SendGateway',
    'ValidationError',
    'Identity',
    'Role',
    'SessionBinder',
    'SessionState',
    'SubscriptionGuard',
    'SubscriptionLeakRisk',
]
