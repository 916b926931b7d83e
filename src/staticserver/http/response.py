"""
=============================================================================
HTTP RESPONSE
=============================================================================

Immutable HTTP responses and their wire serialization.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

Every response this server writes has the same fixed shape. Only the
Connection block and the presence of a payload vary:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n                    ← status line              │
    │   Date: 2026-01-01T12:00:00Z\r\n         ← always                   │
    │   Server: staticserver/1.0\r\n           ← always                   │
    │                                                                      │
    │   Connection: keep-alive\r\n             ┐                          │
    │   Keep-Alive: timeout=15, max=100\r\n    ┘ persistent connection    │
    │        - or -                                                        │
    │   Connection: close\r\n                    closing after this one   │
    │                                                                      │
    │   Content-Length: 1024\r\n               ┐                          │
    │   Content-Type: text/html\r\n            ┘ only with a payload      │
    │   \r\n                                                               │
    │   <payload bytes>                                                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A response without a payload carries neither Content-Length nor
Content-Type. The client sees the header block end and, because every
payload-less response we send also closes the connection, knows there is
nothing more to read.

=============================================================================
IMMUTABILITY
=============================================================================

Responses are frozen dataclasses. A response produced by a strategy may be
cached and handed to many connections at once, so nothing downstream is
allowed to change it. Connection-specific details (keep-alive parameters,
server name, date) are supplied at serialization time instead of being
stored on the response.

Use ResponseBuilder when the payload is assembled in steps:

    response = (ResponseBuilder()
        .status(HTTPStatus.OK)
        .html(listing)
        .build())

=============================================================================
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from .status_codes import HTTPStatus


DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_SERVER_NAME = "staticserver/1.0"

CRLF = "\r\n"


@dataclass(frozen=True)
class HTTPResponse:
    """
    A response to be written to a client.

    Attributes:
        status: The response status.
        payload: Body bytes, or None for a header-only response.
        content_type: Media type of the payload. Ignored without a payload.
    """

    status: HTTPStatus = HTTPStatus.OK
    payload: Optional[bytes] = None
    content_type: str = DEFAULT_CONTENT_TYPE

    @property
    def status_line(self) -> str:
        """The status line, e.g. "HTTP/1.1 404 File Not Found"."""
        return f"HTTP/1.1 {int(self.status)} {self.status.phrase}"

    def to_bytes(
        self,
        server_name: str = DEFAULT_SERVER_NAME,
        keep_alive: bool = False,
        idle_timeout: Optional[float] = None,
        absolute_timeout: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> bytes:
        """
        Serialize the response for socket.sendall().

        Args:
            server_name: Value of the Server header.
            keep_alive: Whether the connection stays open after this response.
            idle_timeout: Advertised in Keep-Alive as "timeout" (seconds).
            absolute_timeout: Advertised in Keep-Alive as "max" (seconds).
            now: Timestamp for the Date header (defaults to the current time).

        Returns:
            The complete response: header block followed by the payload.
        """
        lines = [
            self.status_line,
            f"Date: {format_date(now or datetime.now(timezone.utc))}",
            f"Server: {server_name}",
        ]

        if keep_alive:
            lines.append("Connection: keep-alive")
            lines.append(
                f"Keep-Alive: timeout={_seconds(idle_timeout)}, "
                f"max={_seconds(absolute_timeout)}"
            )
        else:
            lines.append("Connection: close")

        if self.payload is not None:
            lines.append(f"Content-Length: {len(self.payload)}")
            lines.append(f"Content-Type: {self.content_type}")

        header_block = (CRLF.join(lines) + CRLF + CRLF).encode("iso-8859-1")
        return header_block + (self.payload or b"")


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Each setter returns self so calls chain; build() produces the frozen
    response. The builder itself may be reused after build().

        response = (ResponseBuilder()
            .status(HTTPStatus.FORBIDDEN)
            .text("Directory index not supported")
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._payload: Optional[bytes] = None
        self._content_type = DEFAULT_CONTENT_TYPE

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def payload(self, payload: Optional[Union[str, bytes]]) -> "ResponseBuilder":
        """
        Set the payload. Strings are encoded as UTF-8; None clears it.
        """
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        self._payload = payload
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        self._content_type = content_type
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """Set a plain-text payload."""
        return self.payload(text).content_type("text/plain")

    def html(self, html: str) -> "ResponseBuilder":
        """Set an HTML payload."""
        return self.payload(html).content_type("text/html")

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            payload=self._payload,
            content_type=self._content_type,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_date(dt: datetime) -> str:
    """
    Format a datetime for the Date header as ISO-8601 in UTC.

    Example: 2026-01-01T12:00:00Z
    """
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _seconds(value: Optional[float]) -> int:
    return int(value) if value is not None else 0


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """
    Create an error response, optionally with a plain-text explanation.

        error_response(HTTPStatus.FILE_NOT_FOUND)
        error_response(HTTPStatus.FORBIDDEN, "Directory index not supported")
    """
    builder = ResponseBuilder().status(status)
    if message is not None:
        builder.text(message)
    return builder.build()
