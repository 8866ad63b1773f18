"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files from a directory, letting the Negotiator pick the encoding.

    Request: GET /static/css/style.css
             Accept-Encoding: br, gzip

    1. Strip the URL prefix             → css/style.css
    2. Resolve under root_dir           → /var/www/static/css/style.css
    3. Security check: still inside root_dir?
    4. Directory? → index.html, else 403
    5. Open as a Resource, set Cache-Control
    6. Negotiator: style.css.br exists → Content-Encoding: br

=============================================================================
PATH TRAVERSAL
=============================================================================

    GET /static/../../../etc/passwd

resolve() collapses ".." and follows symlinks, and the result must still
be inside root_dir. Anything else is answered with 403 and logged.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional

from ..encoding.negotiator import Negotiator
from ..encoding.resource import Resource
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, forbidden, internal_error, method_not_allowed, not_found


logger = logging.getLogger(__name__)

ALLOWED_METHODS = ["GET", "HEAD"]


class StaticFileHandler:
    """
    Handler for serving static files with content negotiation.

    Usage:
        static = StaticFileHandler(
            root_dir="/var/www/static",
            url_prefix="/static",
            cache_max_age=86400,
        )
        response = static.handle(request)
    """

    def __init__(
        self,
        root_dir: str,
        url_prefix: str = "/static",
        index_file: str = "index.html",
        cache_max_age: int = 3600,
        negotiator: Optional[Negotiator] = None,
    ):
        """
        Initialize static file handler.

        Args:
            root_dir: Root directory to serve files from.
                     All files MUST be inside this directory.
            url_prefix: Stripped from the URL to get the file path.
            index_file: Served for directory requests.
            cache_max_age: Cache-Control max-age in seconds.
            negotiator: Shared Negotiator (a default one is created).

        Raises:
            ValueError: If root_dir is not a directory.
        """
        self.root_dir = Path(root_dir).resolve()
        self.url_prefix = url_prefix.rstrip("/")
        self.index_file = index_file
        self.cache_max_age = cache_max_age
        self.negotiator = negotiator or Negotiator()

        if not self.root_dir.is_dir():
            raise ValueError(f"Static root directory does not exist: {root_dir}")

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Handle a static file request.

        Returns:
            The negotiated response, or a 403/404/405/500 error.
        """
        if request.method not in ALLOWED_METHODS:
            return method_not_allowed(ALLOWED_METHODS)

        # Router wildcard first, then strip the URL prefix
        file_path = request.path_params.get("path", "")
        if not file_path:
            file_path = request.path
            if self.url_prefix and file_path.startswith(self.url_prefix):
                file_path = file_path[len(self.url_prefix):]
        file_path = file_path.lstrip("/")

        full_path = (self.root_dir / file_path).resolve()

        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {file_path}")
            return forbidden("Access denied")

        if full_path.is_dir():
            index_path = full_path / self.index_file
            if not index_path.is_file():
                return forbidden("Directory listing not allowed")
            full_path = index_path

        if not full_path.is_file():
            return not_found(f"File not found: {file_path}")

        return self._serve_file(full_path, request)

    def _serve_file(self, path: Path, request: HTTPRequest) -> HTTPResponse:
        """Open the file, let the negotiator choose, always close it."""
        try:
            resource = Resource.open(path, name=path.name)
        except PermissionError:
            return forbidden("Permission denied")
        except OSError as e:
            logger.error(f"Error opening file {path}: {e}")
            return internal_error("Failed to read file")

        response = HTTPResponse()
        response.set_header("Cache-Control", f"public, max-age={self.cache_max_age}")

        with resource:
            strategy = self.negotiator.serve(resource, request, response)

        logger.debug(f"Served {path} via {strategy.value} ({response.status})")
        return response


def serve_static(root_dir: str, **kwargs) -> StaticFileHandler:
    """
    Factory for StaticFileHandler.

    Example:
        static = serve_static("/var/www/static", cache_max_age=86400)
    """
    return StaticFileHandler(root_dir, **kwargs)
