"""
=============================================================================
STATIC FILE SERVER
=============================================================================

Wires the pieces together and owns the server lifecycle.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer.accept()                                             │
    │        │ (sock, address)                                             │
    │        ▼                                                             │
    │   HTTPServer._handle_connection                                     │
    │        │ ConnectionHandler, tracked until it finishes               │
    │        ▼                                                             │
    │   ThreadPool worker ──► ConnectionHandler.run()                     │
    │                              │                                       │
    │                              ├── RequestParser.parse()              │
    │                              ├── ResponseStrategy.determine_response│
    │                              └── write, keep-alive or close         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ASSEMBLY
=============================================================================

build_response_strategy() turns configuration into the strategy stack:

    cache disabled:   FilesystemResponseStrategy
    cache enabled:    CachingResponseStrategy(FilesystemResponseStrategy)

Pass a strategy to HTTPServer directly to serve something else.

=============================================================================
"""

from typing import Optional
import logging
import socket
import threading

from .access_log import AccessLogger
from .config import ServerConfig
from .core import ConnectionHandler, SocketServer, ThreadPool
from .handlers import CachingResponseStrategy, FilesystemResponseStrategy, ResponseStrategy
from .http import RequestParser


logger = logging.getLogger(__name__)


def build_response_strategy(config: ServerConfig) -> ResponseStrategy:
    """Create the response strategy described by the configuration."""
    strategy: ResponseStrategy = FilesystemResponseStrategy(
        config.document_root,
        allow_directory_index=config.allow_directory_index,
    )
    if config.cache_enabled:
        strategy = CachingResponseStrategy(strategy, max_entries=config.cache_max_entries)
    return strategy


class HTTPServer:
    """
    HTTP/1.1 static file server.

    =========================================================================
    USAGE
    =========================================================================

        server = HTTPServer(ServerConfig(port=8080, document_root="./public"))
        server.run()            # blocks until SIGINT/SIGTERM or stop()

    From another thread (tests):

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5.0)
        host, port = server.address
        ...
        server.stop()
        thread.join()

    =========================================================================
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        strategy: Optional[ResponseStrategy] = None,
    ):
        """
        Args:
            config: Server configuration (defaults if omitted).
            strategy: Response strategy; built from config if omitted.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._socket_server = SocketServer(self.config.host, self.config.port, self.config.backlog)
        self._thread_pool = ThreadPool(idle_timeout=self.config.idle_worker_timeout)
        self._parser = RequestParser()

        # ─────────────────────────────────────────────────────────────────
        # CONTENT
        # ─────────────────────────────────────────────────────────────────
        self.strategy = strategy or build_response_strategy(self.config)
        self._access_log = AccessLogger(log_format=self.config.log_format)

        # ─────────────────────────────────────────────────────────────────
        # RUNTIME STATE
        # ─────────────────────────────────────────────────────────────────
        self._handlers: set[ConnectionHandler] = set()
        self._handlers_lock = threading.Lock()

    @property
    def address(self) -> tuple[str, int]:
        """The bound (host, port)."""
        return self._socket_server.address

    @property
    def active_connections(self) -> int:
        with self._handlers_lock:
            return len(self._handlers)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self) -> None:
        """Start the server and block until it is stopped."""
        self._setup_logging()
        self._thread_pool.start()

        logger.info(
            f"Serving {self.config.document_root} "
            f"(directory index {'on' if self.config.allow_directory_index else 'off'}, "
            f"cache {'on' if self.config.cache_enabled else 'off'})"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self) -> None:
        """Ask a running server to shut down. Safe from any thread."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Wait until the server accepts connections. Returns False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("staticserver").setLevel(level)

    def _shutdown(self):
        """
        Graceful shutdown.

        1. The listener has already stopped accepting.
        2. Give open connections shutdown_grace seconds to finish.
        3. Force-close whatever is still open; that wakes the workers.
        4. Wait for the workers to exit.
        """
        logger.info("Shutting down server...")

        if not self._thread_pool.shutdown(wait=True, timeout=self.config.shutdown_grace):
            with self._handlers_lock:
                handlers = list(self._handlers)
            logger.warning(f"Force-closing {len(handlers)} open connection(s)")
            for handler in handlers:
                handler.close()
            self._thread_pool.shutdown(wait=True, timeout=self.config.shutdown_grace)

        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, sock: socket.socket, address: tuple[str, int]):
        """Wrap an accepted socket and queue it for a worker."""
        handler = ConnectionHandler(
            sock,
            address,
            self._parser,
            self.strategy,
            idle_timeout=self.config.idle_timeout,
            absolute_timeout=self.config.absolute_timeout,
            request_timeout=self.config.request_timeout,
            server_name=self.config.server_name,
            access_log=self._access_log,
        )

        with self._handlers_lock:
            self._handlers.add(handler)

        try:
            self._thread_pool.submit(self._process_connection, args=(handler,))
        except RuntimeError as e:
            logger.warning(f"[{handler.id}] Rejecting connection: {e}")
            self._forget(handler)
            handler.close()

    def _process_connection(self, handler: ConnectionHandler):
        """Run one connection to completion (worker thread)."""
        try:
            handler.run()
        finally:
            self._forget(handler)

    def _forget(self, handler: ConnectionHandler):
        with self._handlers_lock:
            self._handlers.discard(handler)
