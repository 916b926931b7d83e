"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Drives one client connection from accept to close: parse a request, ask the
response strategy for an answer, write it, and either loop for the next
request (keep-alive) or close.

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                   ┌──────────────────┐                              │
    │        ┌────────► │ PARSING_REQUEST  │ ◄─── accept                  │
    │        │          └────────┬─────────┘                              │
    │        │                   │ parsed                                  │
    │        │        ┌──────────┴───────────────────┐                    │
    │        │   keep-alive, success           error, or no keep-alive    │
    │        │        ▼                              ▼                     │
    │        │  ┌────────────┐          ┌────────────────────────┐        │
    │        └──│ RESPONDING │          │ RESPONDING_AND_CLOSING │        │
    │           └─────┬──────┘          └───────────┬────────────┘        │
    │                 │ idle/absolute timer         │                      │
    │                 ▼                             ▼                      │
    │           ┌──────────────────────────────────────┐                  │
    │           │               CLOSED                 │                  │
    │           └──────────────────────────────────────┘                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
KEEP-ALIVE TIMERS
=============================================================================

Two timers bound a persistent connection:

    IDLE TIMER      re-armed after every keep-alive response. Fires when the
                    client has been quiet for idle_timeout seconds.

    ABSOLUTE TIMER  armed once, with the first keep-alive response, and never
                    re-armed. Fires absolute_timeout seconds later no matter
                    how busy the client is.

Whichever fires first closes the connection and cancels the other. Both
values are advertised to the client:

    Keep-Alive: timeout=15, max=100

=============================================================================
CLOSING FROM ANOTHER THREAD
=============================================================================

Timers run on their own threads while the worker thread is blocked reading
the next request. Two rules keep that race safe:

1. Every write and the close share one lock, and close() is idempotent.
   A timer can never close the socket halfway through a response, and a
   timer that fires after the connection closed does nothing.

2. close() calls shutdown(SHUT_RDWR) before close(). The shutdown is what
   wakes the worker: its blocked read returns end-of-stream and the request
   loop exits normally. (A plain close() would not interrupt the read.)

=============================================================================
"""

from enum import Enum
from typing import Optional
import logging
import socket
import threading
import time
import uuid

from ..access_log import AccessLogger
from ..handlers.base import ResponseStrategy
from ..http.request import HTTPRequest, RequestParser
from ..http.response import DEFAULT_SERVER_NAME, HTTPResponse
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in its lifecycle."""
    PARSING_REQUEST = "parsing_request"
    RESPONDING = "responding"
    RESPONDING_AND_CLOSING = "responding_and_closing"
    CLOSED = "closed"


class ConnectionHandler:
    """
    Serves sequential requests on one client socket.

    The handler owns the socket: run() returns only once the socket is
    closed, whatever the reason.

    Usage:
        handler = ConnectionHandler(client_socket, address, parser, strategy)
        handler.run()          # blocks until the connection is done

        handler.close()        # from any thread, e.g. during shutdown
    """

    def __init__(
        self,
        sock: socket.socket,
        address: tuple[str, int],
        parser: RequestParser,
        strategy: ResponseStrategy,
        *,
        idle_timeout: float = 15.0,
        absolute_timeout: float = 100.0,
        request_timeout: float = 30.0,
        server_name: str = DEFAULT_SERVER_NAME,
        access_log: Optional[AccessLogger] = None,
    ):
        """
        Args:
            sock: Connected client socket.
            address: Client (ip, port).
            parser: Request parser (shared, stateless).
            strategy: Response strategy (shared, thread-safe).
            idle_timeout: Seconds a keep-alive connection may sit quiet.
            absolute_timeout: Seconds a keep-alive connection may live in
                total, counted from the first keep-alive response.
            request_timeout: Seconds to wait for the first request.
            server_name: Value of the Server header.
            access_log: Where to record each exchange (optional).
        """
        self.socket = sock
        self.address = address
        self.parser = parser
        self.strategy = strategy
        self.idle_timeout = idle_timeout
        self.absolute_timeout = absolute_timeout
        self.request_timeout = request_timeout
        self.server_name = server_name
        self.access_log = access_log

        self.id = str(uuid.uuid4())[:8]
        self.state = ConnectionState.PARSING_REQUEST
        self.requests_handled = 0

        self._lock = threading.Lock()
        self._idle_timer: Optional[threading.Timer] = None
        self._absolute_timer: Optional[threading.Timer] = None

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else "-"

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # REQUEST LOOP
    # =========================================================================

    def run(self) -> None:
        """
        Handle requests until the connection closes.

        Never raises: every failure ends in a closed socket and a log line.
        """
        logger.debug(f"[{self.id}] Connection from {self.client_ip}")
        stream = None
        try:
            self.socket.settimeout(self.request_timeout)
            stream = self.socket.makefile("rb")
            self._serve(stream)
        except (ConnectionResetError, BrokenPipeError) as e:
            logger.debug(f"[{self.id}] Client disconnected: {e}")
        except socket.timeout:
            logger.debug(f"[{self.id}] Timed out waiting for request")
        except OSError as e:
            if self.closed:
                logger.debug(f"[{self.id}] Socket error after close: {e}")
            else:
                logger.warning(f"[{self.id}] Socket error: {e}")
        except Exception as e:
            logger.exception(f"[{self.id}] Unexpected error: {e}")
            self._respond(None, HTTPResponse(HTTPStatus.INTERNAL_SERVER_ERROR),
                          closing=True, started_at=time.monotonic())
        finally:
            self.close()
            if stream is not None:
                stream.close()
            logger.debug(
                f"[{self.id}] Connection closed after {self.requests_handled} requests"
            )

    def _serve(self, stream) -> None:
        while not self.closed:
            # ─────────────────────────────────────────────────────────────
            # WAIT FOR THE NEXT REQUEST
            # ─────────────────────────────────────────────────────────────
            # peek() blocks until a byte arrives or the stream ends. A clean
            # end here is the client (or a timer) closing between requests.
            if not stream.peek(1):
                logger.debug(f"[{self.id}] End of stream")
                return

            with self._lock:
                if self.closed:
                    return
                self.state = ConnectionState.PARSING_REQUEST
                # The client is talking again; the idle timer restarts once
                # this request's response has been written.
                if self._idle_timer is not None:
                    self._idle_timer.cancel()
                    self._idle_timer = None

            started_at = time.monotonic()

            # ─────────────────────────────────────────────────────────────
            # PARSE
            # ─────────────────────────────────────────────────────────────
            status, request = self.parser.parse(stream)
            if status.is_error or status.is_redirect:
                self._respond(None, HTTPResponse(status), closing=True, started_at=started_at)
                return

            # ─────────────────────────────────────────────────────────────
            # RESOLVE
            # ─────────────────────────────────────────────────────────────
            try:
                response = self.strategy.determine_response(request)
            except Exception as e:
                logger.exception(f"[{self.id}] Failed to resolve {request.uri}: {e}")
                response = HTTPResponse(HTTPStatus.INTERNAL_SERVER_ERROR)

            # ─────────────────────────────────────────────────────────────
            # RESPOND: KEEP-ALIVE OR CLOSE
            # ─────────────────────────────────────────────────────────────
            if response.status.is_error or not request.is_keep_alive:
                self._respond(request, response, closing=True, started_at=started_at)
                return

            if not self._respond(request, response, closing=False, started_at=started_at):
                return

            if self.requests_handled == 1:
                # From here on the timers bound the wait; this only caps a
                # stalled write.
                self.socket.settimeout(self.absolute_timeout)

    def _respond(
        self,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        closing: bool,
        started_at: float,
    ) -> bool:
        """
        Write a response, closing afterwards if asked.

        Returns:
            True if the response was written and the connection is still
            open, False otherwise.
        """
        data = response.to_bytes(
            server_name=self.server_name,
            keep_alive=not closing,
            idle_timeout=self.idle_timeout,
            absolute_timeout=self.absolute_timeout,
        )

        with self._lock:
            if self.closed:
                logger.debug(f"[{self.id}] Closed before response could be written")
                return False

            self.state = (ConnectionState.RESPONDING_AND_CLOSING if closing
                          else ConnectionState.RESPONDING)
            try:
                self.socket.sendall(data)
            except OSError as e:
                logger.warning(f"[{self.id}] Send failed: {e}")
                self._close_locked()
                return False

            self.requests_handled += 1
            if closing:
                self._close_locked()
            else:
                # Timers count from the moment the response is fully sent.
                self._arm_timers_locked()

        if self.access_log is not None:
            self.access_log.log(self.id, self.client_ip, request, response, started_at)
        return not closing

    # =========================================================================
    # TIMERS
    # =========================================================================

    def _arm_timers_locked(self) -> None:
        # Caller holds the lock.
        if self.closed:
            return
        if self._idle_timer is not None:
            self._idle_timer.cancel()
        self._idle_timer = self._start_timer(self.idle_timeout, self._on_idle_timeout)
        if self._absolute_timer is None:
            self._absolute_timer = self._start_timer(
                self.absolute_timeout, self._on_absolute_timeout
            )

    def _start_timer(self, interval: float, callback) -> threading.Timer:
        timer = threading.Timer(interval, callback)
        timer.daemon = True
        timer.name = f"conn-{self.id}-{callback.__name__.strip('_')}"
        timer.start()
        return timer

    def _on_idle_timeout(self) -> None:
        logger.debug(f"[{self.id}] Idle timeout ({self.idle_timeout}s)")
        self.close()

    def _on_absolute_timeout(self) -> None:
        logger.debug(f"[{self.id}] Absolute timeout ({self.absolute_timeout}s)")
        self.close()

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close the connection. Safe to call from any thread, any number of times.
        """
        with self._lock:
            self._close_locked()

    def _close_locked(self) -> None:
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED

        for timer in (self._idle_timer, self._absolute_timer):
            if timer is not None:
                timer.cancel()

        try:
            # Wakes a reader blocked on this socket with end-of-stream.
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Peer already gone
        self.socket.close()
