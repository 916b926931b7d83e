"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables in one dataclass, loadable from environment variables and
validated once at startup.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional
import os

from .access_log import LOG_FORMATS
from .http.response import DEFAULT_SERVER_NAME


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE_VALUES = ("1", "true", "yes", "on")


def default_document_root() -> str:
    """
    ~/public_html, or /var/www/html when there is no home directory.
    """
    home = os.path.expanduser("~")
    if not home or home == "~":
        return "/var/www/html"
    return os.path.join(home, "public_html")


@dataclass
class ServerConfig:
    """
    Configuration for the static file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port, backlog

    CONNECTIONS
    - request_timeout, idle_timeout, absolute_timeout

    CONTENT
    - document_root, allow_directory_index, cache_enabled, cache_max_entries

    THREADS AND SHUTDOWN
    - idle_worker_timeout, shutdown_grace

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces (containers, production)
    """

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free port."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    # ─────────────────────────────────────────────────────────────────────
    # CONNECTION SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    request_timeout: float = 30.0
    """Seconds a new connection may stay silent before its first request."""

    idle_timeout: float = 15.0
    """Seconds a keep-alive connection may sit idle between requests."""

    absolute_timeout: float = 100.0
    """Seconds a keep-alive connection may live, however busy it is."""

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = field(default_factory=default_document_root)
    """Directory that request paths are served from."""

    allow_directory_index: bool = False
    """Render HTML listings for directories without a default document."""

    cache_enabled: bool = False
    """Memoize responses in memory (files changed on disk are not noticed)."""

    cache_max_entries: int = 1024
    """Bound on cached responses when the cache is enabled."""

    # ─────────────────────────────────────────────────────────────────────
    # THREADS AND SHUTDOWN
    # ─────────────────────────────────────────────────────────────────────

    idle_worker_timeout: float = 60.0
    """Seconds an idle worker thread lingers before exiting."""

    shutdown_grace: float = 5.0
    """Seconds to let open connections finish before force-closing them."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (Apache style) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = DEFAULT_SERVER_NAME
    """Value of the Server header."""

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST               Bind address (default: 127.0.0.1)
        HTTP_PORT               Port (default: 8080)
        HTTP_DOCUMENT_ROOT      Document root (default: ~/public_html)
        HTTP_DIRECTORY_INDEX    Enable directory listings (true/false)
        HTTP_CACHE              Enable the response cache (true/false)
        HTTP_IDLE_TIMEOUT       Keep-alive idle timeout in seconds
        HTTP_ABSOLUTE_TIMEOUT   Keep-alive absolute timeout in seconds
        HTTP_LOG_LEVEL          Logging level (default: INFO)
        HTTP_LOG_FORMAT         Access log format, text or json

        Unset variables keep the dataclass defaults.

        =====================================================================
        USAGE
        =====================================================================

        # From shell:
        HTTP_PORT=3000 HTTP_DOCUMENT_ROOT=./public python -m staticserver

        =====================================================================

        Raises:
            ValueError: If a numeric variable does not parse.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        return cls(
            host=env.get("HTTP_HOST", defaults.host),
            port=int(env.get("HTTP_PORT", defaults.port)),
            document_root=env.get("HTTP_DOCUMENT_ROOT", defaults.document_root),
            allow_directory_index=_env_flag(
                env, "HTTP_DIRECTORY_INDEX", defaults.allow_directory_index
            ),
            cache_enabled=_env_flag(env, "HTTP_CACHE", defaults.cache_enabled),
            idle_timeout=float(env.get("HTTP_IDLE_TIMEOUT", defaults.idle_timeout)),
            absolute_timeout=float(env.get("HTTP_ABSOLUTE_TIMEOUT", defaults.absolute_timeout)),
            log_level=env.get("HTTP_LOG_LEVEL", defaults.log_level),
            log_format=env.get("HTTP_LOG_FORMAT", defaults.log_format),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        for name in ("request_timeout", "idle_timeout", "absolute_timeout",
                     "idle_worker_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")

        if self.shutdown_grace < 0:
            raise ValueError("shutdown_grace must be >= 0")

        if self.cache_max_entries < 1:
            raise ValueError("cache_max_entries must be >= 1")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Unknown log format: {self.log_format}. Must be one of {', '.join(LOG_FORMATS)}."
            )


def _env_flag(env, name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES
