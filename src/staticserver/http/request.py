"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Tokenizes an HTTP/1.1 request straight off the connection's byte stream
into a structured HTTPRequest, or into the status code explaining why the
request was rejected.

=============================================================================
WHY A STREAMING TOKENIZER?
=============================================================================

We never buffer "the whole request" before looking at it. The parser pulls
one byte at a time from a buffered stream (socket.makefile("rb") in
production, io.BytesIO in tests) and splits it into whitespace-delimited
WORDS:

    GET /docs/index.html HTTP/1.1\r\n      ← three words, then end-of-line
    Host: localhost\r\n                    ← header-name word + rest of line
    Connection: keep-alive\r\n
    \r\n                                   ← "no word": header block ends

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Parsing Pipeline                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   word #1 ──► method    absent → 400   not GET → 501                │
    │   word #2 ──► target    absent → 400   > 2048  → 414                │
    │   word #3 ──► version   absent → 400   not HTTP/1.1 → 505           │
    │                                                                      │
    │   loop:  word ──► "Name:"  + rest of line ──► headers[Name] = value │
    │          (no word → done)   (no colon → 400)                         │
    │                                                                      │
    │   Host header present?      no → 400                                │
    │   "/path" → "http://<Host>/path", re-check length → 414             │
    │   valid absolute URI?       no → 400                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BOUNDED READS
=============================================================================

A pathological client can stream bytes forever without sending whitespace.
Every word is capped at MAX_WORD_LENGTH (twice the URI limit) and every
header line at MAX_HEADER_LINE_LENGTH, so memory per connection stays
bounded no matter what arrives.

End of stream is never an error at the tokenizer level: it simply means
"no more words". The caller decides what a short read means (a missing
method is a 400, a missing blank line after headers is fine).

=============================================================================
"""

from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Optional
from urllib.parse import urlsplit
import logging

from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


HTTP_VERSION_1_1 = "HTTP/1.1"
SUPPORTED_METHODS = frozenset({"GET"})

# Semi-arbitrary, but with de-facto basis: most clients and proxies cap
# URLs somewhere around 2 KB.
MAX_URI_LENGTH = 2048
MAX_WORD_LENGTH = MAX_URI_LENGTH * 2
MAX_HEADER_LINE_LENGTH = 8192

# Request bytes are ISO-8859-1: every byte maps to exactly one character.
ENCODING = "iso-8859-1"

_CR = "\r"
_LF = "\n"
_BLANKS = (" ", "\t")


class HTTPParseError(Exception):
    """
    Raised inside the parser when the request must be rejected.

    Carries the status code to report. RequestParser.parse() catches it and
    returns the status, so it never escapes into the connection loop.
    """

    def __init__(self, message: str, status: HTTPStatus = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class HTTPRequest:
    """
    A successfully parsed GET request.

    Frozen: the parser accumulates method, target and headers while reading
    and builds the request once at the end, so nothing can observe a
    half-parsed request.

    Attributes:
        method: Request method (always "GET" today).
        uri: Absolute URI ("http://localhost/docs/index.html"). Relative
             request targets are rewritten with the Host header.
        headers: Header name → value, names exactly as received.
    """

    method: str
    uri: str
    headers: Dict[str, str] = field(default_factory=dict, hash=False)

    @property
    def path(self) -> str:
        """The URI's path component ("/" when the URI has none)."""
        return urlsplit(self.uri).path or "/"

    @property
    def is_keep_alive(self) -> bool:
        """
        Check if the client asked for a persistent connection.

        Only the exact value "keep-alive" opts in; "close", any other value
        or a missing Connection header means close after the response.
        """
        return self.headers.get("Connection") == "keep-alive"

    @property
    def cache_key(self) -> tuple:
        """Hashable identity of the request: method, URI and header set."""
        return (self.method, self.uri, frozenset(self.headers.items()))

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a header value (exact, case-sensitive name)."""
        return self.headers.get(name, default)


class _WordReader:
    """
    Whitespace-delimited tokenizer over a binary stream.

    Remembers whether the last word ended its physical line, which is how
    the parser tells "Host:\\r\\n" (empty value) from "Host: value".
    """

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self.at_line_end = False

    def _read_char(self) -> Optional[str]:
        data = self._stream.read(1)
        if not data:
            return None
        return data.decode(ENCODING)

    def _finish_line(self, char: Optional[str]) -> None:
        # A CR terminator owns the LF that follows it.
        if char == _CR:
            self._read_char()
        self.at_line_end = char is None or char in (_CR, _LF)

    def read_word(self) -> Optional[str]:
        """
        Read the next word.

        Returns None when there is no word at this position: end of
        stream, or a line consisting solely of CRLF.

        Raises:
            HTTPParseError: If the word exceeds MAX_WORD_LENGTH.
        """
        char = self._read_char()
        while char in _BLANKS:
            char = self._read_char()

        if char is None or char in (_CR, _LF):
            self._finish_line(char)
            return None

        chars = [char]
        while True:
            char = self._read_char()
            if char is None or char.isspace():
                break
            chars.append(char)
            if len(chars) > MAX_WORD_LENGTH:
                raise HTTPParseError(f"Word exceeds {MAX_WORD_LENGTH} characters")

        self._finish_line(char)
        return "".join(chars)

    def read_rest_of_line(self) -> str:
        """
        Read up to the end of the current physical line.

        Returns an empty string if the previous word already ended the line.

        Raises:
            HTTPParseError: If the line exceeds MAX_HEADER_LINE_LENGTH.
        """
        if self.at_line_end:
            return ""

        chars = []
        while True:
            char = self._read_char()
            if char is None or char == _LF:
                break
            if char == _CR:
                self._read_char()
                break
            chars.append(char)
            if len(chars) > MAX_HEADER_LINE_LENGTH:
                raise HTTPParseError(f"Line exceeds {MAX_HEADER_LINE_LENGTH} characters")

        self.at_line_end = True
        return "".join(chars)


class RequestParser:
    """
    Parses one request at a time off a connection's input stream.

    The parser itself is stateless; all per-request state lives in local
    variables of parse(), so a single instance is safely shared by every
    connection.

    Usage:
        parser = RequestParser()
        status, request = parser.parse(stream)
        if status == HTTPStatus.OK:
            ...  # request is an HTTPRequest
    """

    def __init__(self, max_uri_length: int = MAX_URI_LENGTH):
        self.max_uri_length = max_uri_length

    def parse(self, stream: BinaryIO) -> tuple[HTTPStatus, Optional[HTTPRequest]]:
        """
        Parse the next request from the stream.

        Args:
            stream: Binary file-like object positioned at a request line.

        Returns:
            (HTTPStatus.OK, request) on success, otherwise (status, None)
            where status says why the request was rejected.
        """
        try:
            return HTTPStatus.OK, self._parse(_WordReader(stream))
        except HTTPParseError as e:
            logger.debug(f"Rejected request ({e.status} {e.status.phrase}): {e}")
            return e.status, None

    def _parse(self, reader: _WordReader) -> HTTPRequest:
        method, target = self._parse_request_line(reader)
        headers = self._parse_headers(reader)

        host = headers.get("Host")
        if host is None:
            raise HTTPParseError("Missing Host header")

        uri = self._normalize_uri(target, host)
        logger.debug(f"Parsed request {method} {uri}")
        return HTTPRequest(method=method, uri=uri, headers=headers)

    def _parse_request_line(self, reader: _WordReader) -> tuple[str, str]:
        """
        Parse "METHOD SP request-target SP HTTP/1.1".

        Checks run in order, so a request that is wrong in several ways is
        reported by the first problem: method, then target, then version.
        """
        method = reader.read_word()
        if method is None:
            raise HTTPParseError("Missing request method")
        if method not in SUPPORTED_METHODS:
            raise HTTPParseError(f"Unsupported method: {method}", HTTPStatus.NOT_IMPLEMENTED)
        if reader.at_line_end:
            raise HTTPParseError("Missing request target")

        target = reader.read_word()
        if target is None:
            raise HTTPParseError("Missing request target")
        if len(target) > self.max_uri_length:
            raise HTTPParseError(
                f"Request target is {len(target)} characters",
                HTTPStatus.REQUEST_URI_TOO_LONG,
            )
        if reader.at_line_end:
            raise HTTPParseError("Missing protocol version")

        version = reader.read_word()
        if version is None:
            raise HTTPParseError("Missing protocol version")
        if version != HTTP_VERSION_1_1:
            raise HTTPParseError(
                f"Unsupported protocol version: {version}",
                HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        # Anything after the version is ignored.
        reader.read_rest_of_line()
        return method, target

    def _parse_headers(self, reader: _WordReader) -> Dict[str, str]:
        """
        Parse "Name: value" lines until the blank line (or end of stream).

        The first word of each line must contain the colon that terminates
        the header name. The value is everything after that colon, on the
        same physical line, trimmed. Repeated names: the last one wins.
        """
        headers: Dict[str, str] = {}

        while True:
            word = reader.read_word()
            if word is None:
                return headers

            name, colon, value_start = word.partition(":")
            if not colon or not name:
                raise HTTPParseError(f"Malformed header line starting with {word!r}")

            value = (value_start + " " + reader.read_rest_of_line()).strip()
            headers[name] = value

    def _normalize_uri(self, target: str, host: str) -> str:
        """
        Turn the request target into an absolute URI.

            "/docs/a.html" + Host "localhost" → "http://localhost/docs/a.html"
            "http://localhost/docs/a.html"     → unchanged
        """
        if target.startswith("/"):
            uri = f"http://{host}{target}"
        else:
            uri = target

        if len(uri) > self.max_uri_length:
            raise HTTPParseError(
                f"Normalized URI is {len(uri)} characters",
                HTTPStatus.REQUEST_URI_TOO_LONG,
            )

        try:
            parts = urlsplit(uri)
            parts.port  # raises ValueError on a malformed port
        except ValueError as e:
            raise HTTPParseError(f"Invalid URI {uri!r}: {e}")

        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise HTTPParseError(f"Invalid URI {uri!r}")

        return uri


def parse_request(stream: BinaryIO) -> tuple[HTTPStatus, Optional[HTTPRequest]]:
    """
    Convenience function to parse a single request.

    Use RequestParser directly to customize the URI limit.
    """
    return RequestParser().parse(stream)
