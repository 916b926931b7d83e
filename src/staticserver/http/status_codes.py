"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The small, fixed vocabulary of status codes this server ever sends.

A static file server does not need the full RFC 7231 registry. Every
response it produces falls into one of these buckets:

    ┌────────────────────────────────────────────────────────────────────┐
    │                      STATUS CODE CATALOG                           │
    ├────────┬───────────────────────────────────────────────────────────┤
    │  2xx   │ 200 OK                      - Document served             │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ 400 Bad Request             - Malformed request / no Host │
    │        │ 403 Forbidden               - Unreadable, or no index     │
    │        │ 404 File Not Found          - Nothing at that path        │
    │        │ 406 Not Acceptable          - Accept header mismatch      │
    │        │ 414 Request-URI Too Long    - Target over 2048 chars      │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ 500 Internal Server Error   - Bad docroot, I/O failure    │
    │        │ 501 Not Implemented         - Any method but GET          │
    │        │ 505 HTTP Version Not Supp.  - Anything but HTTP/1.1       │
    └────────┴───────────────────────────────────────────────────────────┘

The connection handler only ever looks at the *class* of a status
(is_error, is_redirect) to decide whether the connection may persist, so
the classification properties are the important part of this module.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.OK
        <HTTPStatus.OK: 200>
        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.FILE_NOT_FOUND.phrase
        'File Not Found'
    """

    # 2xx
    OK = 200

    # 4xx
    BAD_REQUEST = 400
    FORBIDDEN = 403
    FILE_NOT_FOUND = 404
    NOT_ACCEPTABLE = 406
    REQUEST_URI_TOO_LONG = 414

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    HTTP_VERSION_NOT_SUPPORTED = 505

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 File Not Found
                     ─── ──────────────
                      │        │
                      │        └── Reason phrase
                      └─────────── Status code
        """
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_redirect(self) -> bool:
        """Check if this is a 3xx (redirection) status code."""
        return 300 <= self < 400

    @property
    def is_client_error(self) -> bool:
        """Check if this is a 4xx (client error) status code."""
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        """
        Check if this is a 5xx (or higher) status code.

        Anything at or above 500 counts, so an out-of-range code is never
        mistaken for a success.
        """
        return self >= 500

    @property
    def is_error(self) -> bool:
        """Check if this is a client or server error."""
        return self.is_client_error or self.is_server_error


# Reason phrases, as they appear on the status line.
_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.FILE_NOT_FOUND: "File Not Found",
    HTTPStatus.NOT_ACCEPTABLE: "Not Acceptable",
    HTTPStatus.REQUEST_URI_TOO_LONG: "Request-URI Too Long",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
