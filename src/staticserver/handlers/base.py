"""
Response strategy interface.

A strategy turns a parsed request into a response. The connection handler
knows nothing about where responses come from; it only calls
determine_response() on whatever strategy the server was assembled with.

    ┌──────────────────┐   HTTPRequest   ┌───────────────────────────┐
    │ ConnectionHandler│ ──────────────► │ ResponseStrategy          │
    │                  │ ◄────────────── │   FilesystemResponse...   │
    └──────────────────┘   HTTPResponse  │   CachingResponse...      │
                                         └───────────────────────────┘

Strategies are shared by every connection, so implementations must be safe
to call from many worker threads at once.
"""

from abc import ABC, abstractmethod

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


class ResponseStrategy(ABC):
    """Maps a request to a response."""

    @abstractmethod
    def determine_response(self, request: HTTPRequest) -> HTTPResponse:
        """
        Produce the response for a request.

        Expected failures (missing files, permissions, negotiation) are
        expressed as error responses. Raising is reserved for bugs; the
        connection handler turns an exception into a 500.
        """
