"""Socket.IO package for consultroom.

Components:
- transport: Socket.IO and in-memory transports consumed by the session core
- client: terminal chat client for one room participant
- server: development relay server routing room events
"""

from . import transport
from . import client
from . import server

__all__ = [
    'transport',
    'client',
    'server'
]
