"""
=============================================================================
TCP LISTENER
=============================================================================

Binds the listening socket and hands every accepted client socket to a
callback. Knows nothing about HTTP.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   bind() ──► listen(backlog) ──► accept loop ──► on_connection(     │
    │                                     │              sock, address)    │
    │                                     │                                │
    │                        accept() times out every second so the loop  │
    │                        notices shutdown() without a wake-up call     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SIGNALS
=============================================================================

SIGTERM (docker stop, systemd) and SIGINT (Ctrl+C) trigger a graceful
shutdown instead of killing the process. Python only lets the main thread
install signal handlers, so when the listener runs on another thread (as in
the test suite) signals are left alone and shutdown() must be called
explicitly.

=============================================================================
"""

from typing import Callable, Optional, Tuple
import logging
import signal
import socket
import threading


logger = logging.getLogger(__name__)


ConnectionCallback = Callable[[socket.socket, Tuple[str, int]], None]


class SocketServer:
    """
    Accepts TCP connections and dispatches them to a callback.

    Usage:
        def on_connection(sock, address):
            ...

        server = SocketServer("0.0.0.0", 8080)
        server.start(on_connection)   # blocks until shutdown()
    """

    ACCEPT_POLL_INTERVAL = 1.0

    def __init__(self, host: str, port: int, backlog: int = 128):
        """
        Args:
            host: Interface to bind ("0.0.0.0" for all).
            port: Port to bind; 0 picks a free one (see `address`).
            backlog: Pending-connection queue length for listen().
        """
        self.host = host
        self.port = port
        self.backlog = backlog

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port once bound to port 0."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.host, self.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind immediately after a restart instead of waiting out TIME_WAIT.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Small responses go out immediately.
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(self.ACCEPT_POLL_INTERVAL)
        return sock

    def bind(self) -> Tuple[str, int]:
        """
        Bind and start listening without accepting yet.

        Returns:
            The bound address.

        Raises:
            OSError: If the address cannot be bound.
        """
        if self._socket is not None:
            return self.address

        sock = self._create_socket()
        try:
            sock.bind((self.host, self.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.host}:{self.port}: {e}")
            sock.close()
            raise

        sock.listen(self.backlog)
        self._socket = sock
        return self.address

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, leaving signal handlers alone")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, on_connection: ConnectionCallback):
        """
        Accept connections until shutdown() is called. Blocks.

        Args:
            on_connection: Called with (client_socket, address) for every
                accepted connection. Must return quickly; the callback owns
                the socket from then on.
        """
        self.bind()
        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(on_connection)
        finally:
            self._cleanup()

    def _accept_loop(self, on_connection: ConnectionCallback):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")
            # Accepted sockets inherit the listener's timeout; reset to blocking.
            client_socket.settimeout(None)
            on_connection(client_socket, client_address)

    def shutdown(self):
        """Stop accepting. Idempotent; safe from signal handlers and other threads."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Wait until the listener is accepting. Returns False on timeout."""
        return self._ready_event.wait(timeout)
