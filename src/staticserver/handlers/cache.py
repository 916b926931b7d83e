"""
=============================================================================
RESPONSE CACHE
=============================================================================

Memoizes another strategy's responses, keyed by the full request identity
(method, URI and header set).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request ──► key in cache? ── yes ──► cached response (hit)        │
    │                    │                                                 │
    │                    no                                                │
    │                    ▼                                                 │
    │           delegate.determine_response()  (lock NOT held)            │
    │                    │                                                 │
    │           server error? ── yes ──► returned, not stored             │
    │                    │                                                 │
    │                    no ──► stored, oldest entry evicted if full      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONCURRENCY
=============================================================================

The lock guards only the dictionary. Loading happens outside it, so two
connections missing on the same key at once may both hit the filesystem;
the second store simply overwrites the first with an equal response. Reads
never block on a slow disk.

Cached responses never expire. A file changed on disk keeps being served
from the cache until the entry is evicted or clear() is called.

=============================================================================
"""

from collections import OrderedDict
import logging
import threading

from .base import ResponseStrategy
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


class CachingResponseStrategy(ResponseStrategy):
    """
    LRU cache in front of another strategy.

    Args:
        delegate: Strategy that produces responses on a miss.
        max_entries: Bound on cached responses; least recently used go first.
    """

    def __init__(self, delegate: ResponseStrategy, max_entries: int = 1024):
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")

        self.delegate = delegate
        self.max_entries = max_entries
        self._entries: OrderedDict[tuple, HTTPResponse] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def determine_response(self, request: HTTPRequest) -> HTTPResponse:
        key = request.cache_key

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self._entries.move_to_end(key)
                self.hits += 1
                return cached
            self.misses += 1

        try:
            response = self.delegate.determine_response(request)
        except Exception:
            logger.exception(f"Cache load failed for {request.uri}, calling strategy directly")
            return self.delegate.determine_response(request)

        if not response.status.is_server_error:
            self._store(key, response)
        return response

    def _store(self, key: tuple, response: HTTPResponse) -> None:
        with self._lock:
            self._entries[key] = response
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        """Drop every cached response."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
