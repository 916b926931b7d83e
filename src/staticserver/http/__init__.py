"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows the shape of HTTP/1.1 messages, and nothing that
knows about sockets or files:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSING (request.py)                                        │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Byte stream → HTTPRequest, or the status explaining the rejection  │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSES (response.py)                                             │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Immutable HTTPResponse, ResponseBuilder, wire serialization        │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ STATUS CODES (status_codes.py)                                      │
    │ ─────────────────────────────────────────────────────────────────── │
    │ The status catalog and its classification (is_error, ...)          │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ CONTENT TYPES (mime_types.py)                                       │
    │ ─────────────────────────────────────────────────────────────────── │
    │ File name → media type for the Content-Type header                 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import HTTPResponse, ResponseBuilder, error_response
from .status_codes import HTTPStatus
from .mime_types import ContentTypeResolver, get_content_type

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "error_response",

    # Status codes
    "HTTPStatus",

    # Content types
    "ContentTypeResolver",
    "get_content_type",
]
