"""
Command-line entry point: python -m staticserver

Settings come from the environment (see ServerConfig.from_env) and are
overridden by any flags given on the command line.
"""

import argparse
import sys

from . import __version__
from .access_log import LOG_FORMATS
from .config import LOG_LEVELS, ServerConfig
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Serve static files over HTTP/1.1",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m staticserver --root ./public              # Serve ./public on 8080
  python -m staticserver --port 0 --directory-index   # Any free port, with listings
  python -m staticserver --cache --log-format json    # Cached, JSON access log
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 8080, 0 for any free port)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        dest="document_root",
        help="Document root (default: ~/public_html)",
    )
    parser.add_argument(
        "--directory-index",
        action="store_true",
        default=None,
        help="List directories that have no index.html",
    )
    parser.add_argument(
        "--cache",
        action="store_true",
        default=None,
        help="Cache responses in memory",
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONNECTION ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--idle-timeout",
        type=float,
        help="Keep-alive idle timeout in seconds (default: 15)",
    )
    parser.add_argument(
        "--absolute-timeout",
        type=float,
        help="Keep-alive absolute timeout in seconds (default: 100)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        type=str.upper,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        help="Access log format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"staticserver {__version__}",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment configuration with command-line overrides applied."""
    config = ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "document_root": args.document_root,
        "allow_directory_index": args.directory_index,
        "cache_enabled": args.cache,
        "idle_timeout": args.idle_timeout,
        "absolute_timeout": args.absolute_timeout,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)
    return config


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = HTTPServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
