"""
=============================================================================
CORE: SOCKETS, CONNECTIONS AND THREADS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer          accepts TCP connections                     │
    │        │                                                             │
    │        ▼                                                             │
    │   ThreadPool            one worker thread per connection            │
    │        │                                                             │
    │        ▼                                                             │
    │   ConnectionHandler     request loop, keep-alive timers, close      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import ConnectionHandler, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "ConnectionHandler",
    "ConnectionState",
    "ThreadPool",
]
