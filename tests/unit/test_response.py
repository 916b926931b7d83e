"""
Unit tests for HTTP response building and serialization.
"""

from datetime import datetime, timezone

import pytest

from staticserver.http.response import (
    DEFAULT_CONTENT_TYPE,
    HTTPResponse,
    ResponseBuilder,
    error_response,
    format_date,
)
from staticserver.http.status_codes import HTTPStatus


NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def header_lines(raw: bytes) -> list[str]:
    head, _, _ = raw.partition(b"\r\n\r\n")
    return head.decode("iso-8859-1").split("\r\n")


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_defaults(self):
        response = HTTPResponse()

        assert response.status == HTTPStatus.OK
        assert response.payload is None
        assert response.content_type == DEFAULT_CONTENT_TYPE

    def test_status_line(self):
        assert HTTPResponse(HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(HTTPStatus.FILE_NOT_FOUND).status_line == "HTTP/1.1 404 File Not Found"
        assert (HTTPResponse(HTTPStatus.REQUEST_URI_TOO_LONG).status_line
                == "HTTP/1.1 414 Request-URI Too Long")

    def test_immutable(self):
        response = HTTPResponse()
        with pytest.raises(AttributeError):
            response.status = HTTPStatus.FORBIDDEN

    def test_to_bytes_with_payload_and_close(self):
        response = HTTPResponse(HTTPStatus.OK, b"Hello", "text/plain")
        raw = response.to_bytes(server_name="test/1.0", now=NOW)

        assert header_lines(raw) == [
            "HTTP/1.1 200 OK",
            "Date: 2026-01-01T12:00:00Z",
            "Server: test/1.0",
            "Connection: close",
            "Content-Length: 5",
            "Content-Type: text/plain",
        ]
        assert raw.endswith(b"\r\n\r\nHello")

    def test_to_bytes_keep_alive(self):
        response = HTTPResponse(HTTPStatus.OK, b"abc", "text/html")
        raw = response.to_bytes(
            server_name="test/1.0",
            keep_alive=True,
            idle_timeout=15.0,
            absolute_timeout=100.0,
            now=NOW,
        )

        lines = header_lines(raw)
        assert lines[3] == "Connection: keep-alive"
        assert lines[4] == "Keep-Alive: timeout=15, max=100"
        assert lines[5] == "Content-Length: 3"

    def test_to_bytes_without_payload(self):
        raw = HTTPResponse(HTTPStatus.BAD_REQUEST).to_bytes(now=NOW)

        lines = header_lines(raw)
        assert lines[0] == "HTTP/1.1 400 Bad Request"
        assert not any(line.startswith("Content-") for line in lines)
        assert raw.endswith(b"Connection: close\r\n\r\n")

    def test_empty_payload_still_has_length(self):
        raw = HTTPResponse(HTTPStatus.OK, b"").to_bytes(now=NOW)

        assert "Content-Length: 0" in header_lines(raw)

    def test_binary_payload_untouched(self):
        payload = bytes(range(256))
        raw = HTTPResponse(HTTPStatus.OK, payload).to_bytes(now=NOW)

        assert raw.endswith(payload)
        assert f"Content-Length: {len(payload)}" in header_lines(raw)


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_default_build(self):
        assert ResponseBuilder().build() == HTTPResponse()

    def test_text(self):
        response = ResponseBuilder().status(HTTPStatus.FORBIDDEN).text("nope").build()

        assert response.status == HTTPStatus.FORBIDDEN
        assert response.payload == b"nope"
        assert response.content_type == "text/plain"

    def test_html(self):
        response = ResponseBuilder().html("<h1>Hi</h1>").build()

        assert response.payload == b"<h1>Hi</h1>"
        assert response.content_type == "text/html"

    def test_payload_encodes_utf8(self):
        response = ResponseBuilder().payload("café").build()
        assert response.payload == "café".encode("utf-8")

    def test_payload_none_clears(self):
        response = ResponseBuilder().payload(b"x").payload(None).build()
        assert response.payload is None

    def test_method_chaining(self):
        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_ACCEPTABLE)
            .payload("text/html")
            .content_type("application/octet-stream")
            .build())

        assert response == HTTPResponse(
            HTTPStatus.NOT_ACCEPTABLE, b"text/html", "application/octet-stream"
        )


class TestHelpers:

    def test_error_response_without_message(self):
        response = error_response(HTTPStatus.FILE_NOT_FOUND)

        assert response.status == HTTPStatus.FILE_NOT_FOUND
        assert response.payload is None

    def test_error_response_with_message(self):
        response = error_response(HTTPStatus.FORBIDDEN, "Directory index not supported")

        assert response.payload == b"Directory index not supported"
        assert response.content_type == "text/plain"

    def test_format_date_converts_to_utc(self):
        from datetime import timedelta
        local = datetime(2026, 1, 1, 14, 30, 5, tzinfo=timezone(timedelta(hours=2)))

        assert format_date(local) == "2026-01-01T12:30:05Z"
