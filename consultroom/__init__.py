"""consultroom

Realtime, room-scoped chat between role-based participants of a consultation
(for example a doctor and a pharmacist). This package implements the client
session core: joining a room once, owning the room's event subscriptions,
building the ordered transcript and validating outbound messages.
"""

__version__ = "0.1.0"
