"""
=============================================================================
STATICSERVER: A STATIC FILE HTTP/1.1 SERVER
=============================================================================

Serves files from a document root over plain sockets and threads:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ 1. PROTOCOL (http/)                                                 │
    │    Bounded request tokenizer, immutable responses, status codes,   │
    │    content types                                                    │
    │                                                                      │
    │ 2. CONTENT (handlers/)                                              │
    │    Filesystem strategy: default documents, directory listings,     │
    │    Accept negotiation, path traversal protection; LRU cache        │
    │                                                                      │
    │ 3. CONNECTIONS (core/)                                              │
    │    Listener, cached worker pool, per-connection state machine      │
    │    with idle and absolute keep-alive timers                         │
    │                                                                      │
    │ 4. OPERATIONS                                                       │
    │    Configuration from environment/CLI, access log, graceful        │
    │    shutdown                                                         │
    └─────────────────────────────────────────────────────────────────────┘

Only GET is served. No TLS, no chunked encoding, no range requests.

=============================================================================
QUICK START
=============================================================================

    python -m staticserver --root ./public --port 8080

    from staticserver import HTTPServer, ServerConfig
    HTTPServer(ServerConfig(document_root="./public")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, build_response_strategy
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "build_response_strategy", "__version__"]
