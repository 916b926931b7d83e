"""
pytest configuration and fixtures.
"""

import dataclasses
import socket
import threading
from pathlib import Path
from typing import Generator
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import HTTPServer, ServerConfig
from staticserver.http import HTTPRequest


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /get/test.html HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def docroot(tmp_path: Path) -> Path:
    """
    A small document tree:

        docroot/
            index.html
            hello.txt
            data.bin
            get/
                test.html
                test.txt
                test.xml
            empty/
            nested/
                default.htm
    """
    root = tmp_path / "docroot"
    root.mkdir()
    (root / "index.html").write_text("<h1>Home</h1>")
    (root / "hello.txt").write_text("Hello, world!")
    (root / "data.bin").write_bytes(bytes(range(16)))

    get = root / "get"
    get.mkdir()
    (get / "test.html").write_text("Test Content")
    (get / "test.txt").write_text("Test Content")
    (get / "test.xml").write_text("<test/>")

    (root / "empty").mkdir()

    nested = root / "nested"
    nested.mkdir()
    (nested / "default.htm").write_text("<p>nested default</p>")
    return root


@pytest.fixture
def make_request():
    """
    Factory for parsed requests, bypassing the parser.

        make_request("/get/test.html", Accept="text/plain")
    """
    def factory(path: str = "/", **headers: str) -> HTTPRequest:
        all_headers = {"Host": "localhost"}
        all_headers.update(headers)
        return HTTPRequest(method="GET", uri=f"http://localhost{path}", headers=all_headers)
    return factory


@pytest.fixture
def read_response():
    """
    Reader for one response off a client socket.

        status_line, headers, body = read_response(sock)
    """
    def reader(sock: socket.socket) -> tuple[str, dict, bytes]:
        data = b""
        while b"\r\n\r\n" not in data:
            chunk = sock.recv(4096)
            if not chunk:
                raise AssertionError(f"Connection closed mid-response: {data!r}")
            data += chunk

        head, _, body = data.partition(b"\r\n\r\n")
        lines = head.decode("iso-8859-1").split("\r\n")
        headers = dict(line.split(": ", 1) for line in lines[1:])

        length = int(headers.get("Content-Length", 0))
        while len(body) < length:
            chunk = sock.recv(4096)
            if not chunk:
                break
            body += chunk
        return lines[0], headers, body
    return reader


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class ServerThread:
    """Runs an HTTPServer on a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def connect(self, timeout: float = 5.0) -> socket.socket:
        return socket.create_connection(("127.0.0.1", self.port), timeout=timeout)


@pytest.fixture
def server_config(docroot: Path) -> ServerConfig:
    """Test server configuration serving the docroot fixture."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        document_root=str(docroot),
        idle_timeout=2.0,
        absolute_timeout=5.0,
        request_timeout=5.0,
        shutdown_grace=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def test_server(server_config: ServerConfig) -> Generator[ServerThread, None, None]:
    """A running server on an ephemeral port."""
    srv = ServerThread(HTTPServer(server_config))
    srv.start()

    yield srv

    srv.stop()


@pytest.fixture
def start_server(server_config: ServerConfig):
    """
    Factory for running servers with configuration overrides.

        srv = start_server(allow_directory_index=True)
    """
    servers = []

    def factory(**overrides) -> ServerThread:
        srv = ServerThread(HTTPServer(dataclasses.replace(server_config, **overrides)))
        srv.start()
        servers.append(srv)
        return srv

    yield factory

    for srv in servers:
        srv.stop()
