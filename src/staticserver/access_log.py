"""
=============================================================================
ACCESS LOG
=============================================================================

One line per request/response pair, written to the "staticserver.access"
logger:

    Text (Apache style):
        127.0.0.1 - - [01/Jan/2026:12:00:00 +0000] "GET /index.html" 200 1024 0.84ms

    JSON (for log aggregators):
        {"connection_id": "3f2a9c1e", "method": "GET", "path": "/index.html", ...}

Requests rejected by the parser are logged too, with "-" for the method and
path they never got.

The logger is namespaced so it can be routed on its own:

    logging.getLogger("staticserver.access").addHandler(file_handler)

=============================================================================
"""

from dataclasses import asdict, dataclass
from typing import Optional
import json
import logging
import time

from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger("staticserver.access")

LOG_FORMATS = ("text", "json")


@dataclass
class RequestLog:
    """
    Structured log entry for a request.

    Attributes:
        connection_id: Id of the connection that carried the request.
        method: Request method, "-" if the request line was rejected.
        path: Request path, "-" if the request was rejected.
        client_ip: Client address.
        status_code: Response status.
        content_length: Payload size in bytes (0 without payload).
        duration_ms: Time from parse start to response written.
        timestamp: When the response was written.
    """

    connection_id: str
    method: str
    path: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Emits RequestLog entries in the configured format.

    Args:
        log_format: "text" or "json".
        log_level: Level the entries are logged at.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        if log_format not in LOG_FORMATS:
            raise ValueError(f"Unknown access log format: {log_format}")
        self.log_format = log_format
        self.log_level = log_level

    def log(
        self,
        connection_id: str,
        client_ip: str,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        started_at: float,
    ) -> RequestLog:
        """
        Record one exchange.

        Args:
            connection_id: Connection the exchange happened on.
            client_ip: Client address.
            request: The parsed request, or None if parsing failed.
            response: The response that was written.
            started_at: time.monotonic() when handling began.

        Returns:
            The entry that was logged.
        """
        entry = RequestLog(
            connection_id=connection_id,
            method=request.method if request else "-",
            path=request.path if request else "-",
            client_ip=client_ip,
            status_code=int(response.status),
            content_length=len(response.payload) if response.payload else 0,
            duration_ms=(time.monotonic() - started_at) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
        return entry
