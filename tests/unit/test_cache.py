"""
Unit tests for the response cache.
"""

import threading

import pytest

from staticserver.handlers.base import ResponseStrategy
from staticserver.handlers.cache import CachingResponseStrategy
from staticserver.http.response import HTTPResponse
from staticserver.http.status_codes import HTTPStatus


class CountingStrategy(ResponseStrategy):
    """Answers every request with its path, counting calls."""

    def __init__(self, status: HTTPStatus = HTTPStatus.OK):
        self.status = status
        self.calls = 0
        self._lock = threading.Lock()

    def determine_response(self, request):
        with self._lock:
            self.calls += 1
        return HTTPResponse(self.status, request.path.encode(), "text/plain")


class FlakyStrategy(CountingStrategy):
    """Raises on the first call only."""

    def determine_response(self, request):
        first = self.calls == 0
        response = super().determine_response(request)
        if first:
            raise RuntimeError("transient failure")
        return response


class TestCachingResponseStrategy:

    def test_miss_then_hit(self, make_request):
        delegate = CountingStrategy()
        cache = CachingResponseStrategy(delegate)

        first = cache.determine_response(make_request("/a"))
        second = cache.determine_response(make_request("/a"))

        assert first is second
        assert delegate.calls == 1
        assert cache.misses == 1
        assert cache.hits == 1

    def test_headers_are_part_of_the_key(self, make_request):
        delegate = CountingStrategy()
        cache = CachingResponseStrategy(delegate)

        cache.determine_response(make_request("/a", Accept="text/html"))
        cache.determine_response(make_request("/a", Accept="text/plain"))

        assert delegate.calls == 2
        assert len(cache) == 2

    def test_client_errors_are_cached(self, make_request):
        delegate = CountingStrategy(HTTPStatus.FILE_NOT_FOUND)
        cache = CachingResponseStrategy(delegate)

        cache.determine_response(make_request("/missing"))
        cache.determine_response(make_request("/missing"))

        assert delegate.calls == 1

    def test_server_errors_are_not_cached(self, make_request):
        delegate = CountingStrategy(HTTPStatus.INTERNAL_SERVER_ERROR)
        cache = CachingResponseStrategy(delegate)

        cache.determine_response(make_request("/"))
        response = cache.determine_response(make_request("/"))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert delegate.calls == 2
        assert len(cache) == 0

    def test_lru_eviction(self, make_request):
        delegate = CountingStrategy()
        cache = CachingResponseStrategy(delegate, max_entries=2)

        cache.determine_response(make_request("/a"))
        cache.determine_response(make_request("/b"))
        cache.determine_response(make_request("/a"))   # /a is now most recent
        cache.determine_response(make_request("/c"))   # evicts /b

        assert len(cache) == 2
        calls = delegate.calls
        cache.determine_response(make_request("/a"))
        assert delegate.calls == calls
        cache.determine_response(make_request("/b"))
        assert delegate.calls == calls + 1

    def test_load_failure_falls_back_to_delegate(self, make_request):
        delegate = FlakyStrategy()
        cache = CachingResponseStrategy(delegate)

        response = cache.determine_response(make_request("/a"))

        assert response.payload == b"/a"
        assert delegate.calls == 2
        assert len(cache) == 0

    def test_clear(self, make_request):
        delegate = CountingStrategy()
        cache = CachingResponseStrategy(delegate)
        cache.determine_response(make_request("/a"))

        cache.clear()
        cache.determine_response(make_request("/a"))

        assert len(cache) == 1
        assert delegate.calls == 2

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            CachingResponseStrategy(CountingStrategy(), max_entries=0)

    def test_concurrent_access(self, make_request):
        delegate = CountingStrategy()
        cache = CachingResponseStrategy(delegate, max_entries=8)
        errors = []

        def hammer(n):
            try:
                for i in range(50):
                    response = cache.determine_response(make_request(f"/{(n + i) % 10}"))
                    assert response.payload == f"/{(n + i) % 10}".encode()
            except AssertionError as e:
                errors.append(e)

        threads = [threading.Thread(target=hammer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(cache) <= 8
        assert cache.hits + cache.misses == 400
