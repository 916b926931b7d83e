"""
=============================================================================
CONTENT TYPE RESOLUTION
=============================================================================

Maps a file path to the media type sent in Content-Type.

=============================================================================
LOOKUP ORDER
=============================================================================

    ┌────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │  1. Platform MIME database                                         │
    │     mimetypes.guess_type() reads the system mime.types files       │
    │     (/etc/mime.types and friends) plus Python's built-in map.      │
    │                                                                     │
    │  2. Fallback table                                                  │
    │     A handful of extensions we must always get right, even on a    │
    │     stripped-down host with no MIME database at all.               │
    │                                                                     │
    │  3. application/octet-stream                                        │
    │     "I don't know what this is, treat it as binary."               │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

Compressed files (".gz", ".bz2", ".xz", ...) resolve to their compression
format. The server never sends Content-Encoding, so "report.csv.gz" goes
out as application/gzip rather than text/csv.

No charset parameter is appended. Files are served byte-for-byte, and the
server has no idea what encoding they were written in.

=============================================================================
"""

from pathlib import Path
from typing import Optional
import logging
import mimetypes


logger = logging.getLogger(__name__)


# Always-known extensions, consulted when the platform has no answer.
FALLBACK_TYPES = {
    ".html": "text/html",
    ".htm": "text/html",
    ".txt": "text/plain",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# A compressed file is served as the compressed bytes, so its type is the
# compression format, not what is inside ("a.tar.gz" is gzip, not tar).
ENCODING_TYPES = {
    "gzip": "application/gzip",
    "bzip2": "application/x-bzip2",
    "xz": "application/x-xz",
    "compress": "application/x-compress",
    "br": "application/x-brotli",
}


class ContentTypeResolver:
    """
    Resolves file paths to media types.

    Args:
        use_system_types: Consult the platform MIME database first. Turn off
            for fully deterministic results (tests, minimal containers).

    Example:
        >>> ContentTypeResolver(use_system_types=False).resolve("a/INDEX.HTML")
        'text/html'
    """

    def __init__(self, use_system_types: bool = True):
        self.use_system_types = use_system_types
        if use_system_types and not mimetypes.inited:
            mimetypes.init()

    def resolve(self, path: str | Path) -> str:
        """
        Get the media type for a file.

        Only the name is examined; the file does not have to exist.
        """
        path = Path(path)

        if self.use_system_types:
            guessed = self._probe(path)
            if guessed:
                return guessed

        return FALLBACK_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)

    def _probe(self, path: Path) -> Optional[str]:
        mime_type, encoding = mimetypes.guess_type(path.name, strict=False)
        if encoding is not None:
            return ENCODING_TYPES.get(encoding, DEFAULT_MIME_TYPE)
        if mime_type is None:
            logger.debug(f"No system MIME type for {path.name!r}")
        return mime_type


def get_content_type(path: str | Path) -> str:
    """
    Get the media type for a file using the platform database.

        >>> get_content_type("style.css")
        'text/css'
    """
    return ContentTypeResolver().resolve(path)
