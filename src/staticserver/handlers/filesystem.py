"""
=============================================================================
FILESYSTEM RESPONSE STRATEGY
=============================================================================

Serves documents from a document root on the local filesystem.

=============================================================================
RESOLUTION FLOW
=============================================================================

    GET http://localhost/docs/  (document root /var/www/html)

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   document root exists and is a directory?   no → 500 (misconfig)   │
    │                    │                                                 │
    │   /var/www/html + unquote("/docs/") = /var/www/html/docs/           │
    │                    │                                                 │
    │   resolves inside the document root?          no → 403              │
    │   exists?                                     no → 404              │
    │   readable?                                   no → 403              │
    │                    │                                                 │
    │        ┌───────────┴────────────┐                                   │
    │     directory                 file                                   │
    │        │                        │                                    │
    │   index.html, index.htm,    content type → Accept header?           │
    │   default.html, default.htm   │       │                              │
    │   first one found → file     yes     no → 406 (payload: the type)   │
    │   none → directory index      │                                      │
    │          disabled → 403      200 + file bytes                        │
    │          enabled  → 200 HTML listing                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    GET /../../../etc/passwd HTTP/1.1

The joined path is resolved with os.path.realpath (following ".." and
symlinks) and must still lie inside the resolved document root. Anything
that escapes is answered with 403 Forbidden before the filesystem is asked
whether it exists, so the response does not leak what lives outside.

=============================================================================
"""

from typing import List, Optional
from urllib.parse import quote, unquote
import html
import logging
import os

from .base import ResponseStrategy
from ..http.mime_types import ContentTypeResolver
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, error_response
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


# Probed in this order when a directory is requested.
DEFAULT_DOCUMENTS = ("index.html", "index.htm", "default.html", "default.htm")

DIRECTORY_INDEX_DISABLED = "Directory index not supported"


class FilesystemResolver:
    """
    Thin wrapper around filesystem access.

    Every filesystem question the strategy asks goes through here, so tests
    can subclass it to simulate conditions that are hard to produce for
    real (an unreadable file when running as root, for instance).
    """

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def can_read(self, path: str) -> bool:
        return os.access(path, os.R_OK)

    def read_bytes(self, path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def list_dir(self, path: str) -> List[str]:
        """Entry names in a directory, sorted."""
        return sorted(os.listdir(path))

    def default_document(self, directory: str) -> Optional[str]:
        """
        Find the default document for a directory.

        Returns:
            Path of the first of DEFAULT_DOCUMENTS that exists as a regular
            file, or None.
        """
        for name in DEFAULT_DOCUMENTS:
            candidate = self.join_path(directory, name)
            if self.exists(candidate) and self.is_file(candidate):
                return candidate
        return None

    @staticmethod
    def join_path(lhs: str, rhs: str) -> str:
        """
        Join two path fragments with exactly one separator between them.

            >>> FilesystemResolver.join_path("/docroot/", "/get/")
            '/docroot/get/'
        """
        lhs_sep = lhs.endswith(os.sep)
        rhs_sep = rhs.startswith(os.sep)
        if lhs_sep and rhs_sep:
            return lhs + rhs[1:]
        if lhs_sep or rhs_sep:
            return lhs + rhs
        return lhs + os.sep + rhs


class FilesystemResponseStrategy(ResponseStrategy):
    """
    Maps request paths onto files under a document root.

    Configuration is fixed at construction; the strategy keeps no
    per-request state and is shared by all connections.

    Usage:
        strategy = FilesystemResponseStrategy("/var/www/html",
                                              allow_directory_index=True)
        response = strategy.determine_response(request)
    """

    def __init__(
        self,
        document_root: str,
        *,
        allow_directory_index: bool = False,
        content_types: Optional[ContentTypeResolver] = None,
        filesystem: Optional[FilesystemResolver] = None,
    ):
        """
        Args:
            document_root: Directory that request paths are resolved under.
                A missing root is reported per request as a 500, not here.
            allow_directory_index: Render an HTML listing for directories
                without a default document (otherwise 403).
            content_types: Media type resolver (default: system database).
            filesystem: Filesystem access wrapper.
        """
        self.document_root = os.path.abspath(os.path.expanduser(str(document_root)))
        self.allow_directory_index = allow_directory_index
        self.content_types = content_types or ContentTypeResolver()
        self.filesystem = filesystem or FilesystemResolver()

    def determine_response(self, request: HTTPRequest) -> HTTPResponse:
        """Resolve the request path to a file, a listing or an error."""
        fs = self.filesystem
        path = unquote(request.path)
        logger.debug(f"Determining response for requested path {path!r}")

        # ─────────────────────────────────────────────────────────────────
        # DOCUMENT ROOT SANITY
        # ─────────────────────────────────────────────────────────────────
        if not (fs.exists(self.document_root) and fs.is_dir(self.document_root)):
            logger.error(
                f"Document root does not exist or is not a directory: {self.document_root}"
            )
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)

        if "\x00" in path:
            return error_response(HTTPStatus.FILE_NOT_FOUND)

        document = fs.join_path(self.document_root, path)

        # ─────────────────────────────────────────────────────────────────
        # SECURITY: PATH TRAVERSAL CHECK
        # ─────────────────────────────────────────────────────────────────
        if not self._is_inside_root(document):
            logger.warning(f"Path traversal attempt: {path!r}")
            return error_response(HTTPStatus.FORBIDDEN)

        if not fs.exists(document):
            return error_response(HTTPStatus.FILE_NOT_FOUND)
        if not fs.can_read(document):
            return error_response(HTTPStatus.FORBIDDEN)

        return self._process_document(document, request)

    def _is_inside_root(self, document: str) -> bool:
        root = os.path.realpath(self.document_root)
        resolved = os.path.realpath(document)
        return resolved == root or resolved.startswith(root.rstrip(os.sep) + os.sep)

    def _process_document(self, document: str, request: HTTPRequest) -> HTTPResponse:
        fs = self.filesystem

        if fs.is_dir(document):
            default = fs.default_document(document)
            if default is None:
                logger.debug(f"No default document in {document}, trying directory index")
                return self._directory_index(document)
            logger.debug(f"Found default document {default} for {document}")
            return self._process_document(default, request)

        # The default document was found after the initial checks; check again.
        if not fs.exists(document):
            return error_response(HTTPStatus.FILE_NOT_FOUND)
        if not fs.can_read(document):
            return error_response(HTTPStatus.FORBIDDEN)

        content_type = self.content_types.resolve(document)
        logger.debug(f"Resolved content type {content_type!r} for {document}")

        if not accepts(request.get_header("Accept"), content_type):
            return (ResponseBuilder()
                .status(HTTPStatus.NOT_ACCEPTABLE)
                .payload(content_type)
                .build())

        try:
            payload = fs.read_bytes(document)
        except PermissionError:
            return error_response(HTTPStatus.FORBIDDEN)
        except OSError:
            logger.exception(f"Couldn't serve file {document}")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)

        return HTTPResponse(
            status=HTTPStatus.OK,
            payload=payload,
            content_type=content_type,
        )

    def _directory_index(self, directory: str) -> HTTPResponse:
        """
        Render an HTML listing of a directory.

            <html><head><title>Index of /docs</title></head>
            <body><h1>Index of /docs</h1><hr/>
            <a href="/docs">.</a><br/>
            <a href="/">..</a><br/>
            <a href="/docs/a.txt">a.txt</a><br/>
            </body></html>
        """
        if not self.allow_directory_index:
            logger.debug("Attempted unsupported directory index")
            return error_response(HTTPStatus.FORBIDDEN, DIRECTORY_INDEX_DISABLED)

        dir_path = self.relative_path(directory)
        title = html.escape(dir_path)

        lines = [
            f"<html><head><title>Index of {title}</title></head>",
            f"<body><h1>Index of {title}</h1><hr/>",
            f'<a href="{quote(dir_path)}">.</a><br/>',
        ]
        if dir_path != "/":
            parent = dir_path.rsplit("/", 1)[0] or "/"
            lines.append(f'<a href="{quote(parent)}">..</a><br/>')

        for name in self.filesystem.list_dir(directory):
            href = self.relative_path(self.filesystem.join_path(directory, name))
            lines.append(f'<a href="{quote(href)}">{html.escape(name)}</a><br/>')

        lines.append("</body></html>")
        return ResponseBuilder().html("\n".join(lines) + "\n").build()

    def relative_path(self, absolute_path: str) -> str:
        """
        Express a path under the document root as a URL path.

            /var/www/html/docs/  →  /docs
            /var/www/html        →  /
        """
        relative = absolute_path
        root = self.document_root.rstrip(os.sep)
        if absolute_path.startswith(root):
            relative = absolute_path[len(root):]
        if relative.endswith(os.sep):
            relative = relative[:-1]
        relative = relative.replace(os.sep, "/")
        if not relative.startswith("/"):
            relative = "/" + relative
        return relative


def accepts(accept_header: Optional[str], content_type: str) -> bool:
    """
    Check a media type against an Accept header.

    Parameters (";q=0.5") are ignored and matching is case-insensitive.
    A "*/*" candidate anywhere in the list accepts everything.

        >>> accepts(None, "text/html")
        True
        >>> accepts("text/plain; UTF-8, text/xml", "text/html")
        False
    """
    if accept_header is None:
        return True

    for candidate in accept_header.split(","):
        media_range = candidate.split(";", 1)[0].strip()
        if media_range == "*/*" or media_range.lower() == content_type.lower():
            return True
    return False
