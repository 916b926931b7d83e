"""
=============================================================================
RESPONSE STRATEGIES
=============================================================================

Strategies decide what to answer for a parsed request:

1. ResponseStrategy
   - The interface the connection handler calls

2. FilesystemResponseStrategy / FilesystemResolver
   - Serve documents from a document root
   - Default documents (index.html, ...) and optional directory listings
   - Accept-header negotiation
   - Path traversal protection

3. CachingResponseStrategy
   - LRU memoization in front of any other strategy

=============================================================================
USAGE
=============================================================================

    from staticserver.handlers import (
        CachingResponseStrategy, FilesystemResponseStrategy,
    )

    strategy = CachingResponseStrategy(
        FilesystemResponseStrategy("/var/www/html", allow_directory_index=True)
    )

=============================================================================
"""

from .base import ResponseStrategy
from .cache import CachingResponseStrategy
from .filesystem import FilesystemResolver, FilesystemResponseStrategy, accepts

__all__ = [
    "ResponseStrategy",
    "CachingResponseStrategy",
    "FilesystemResolver",
    "FilesystemResponseStrategy",
    "accepts",
]
