"""
=============================================================================
HTTP REQUEST
=============================================================================

The request as the negotiation layer sees it. Parsing bytes off a socket
is the host server's job; by the time a request reaches this package it
is already a structured object.

Only a handful of fields matter for content negotiation:

    GET /static/css/style.css HTTP/1.1
    Accept-Encoding: br, gzip          ← which encodings we may use
    If-Modified-Since: Wed, ...        ← handled by the content server

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    Header names are normalized to lowercase on construction, because HTTP
    headers are case-insensitive (RFC 7230). "Accept-Encoding" and
    "accept-encoding" are the same header.

    Attributes:
        method: HTTP method (GET, HEAD, ...)
        path: Request path without the query string
        version: HTTP version string
        headers: Header name (lowercase) → value
        path_params: Values captured by the host's router (e.g. "path")
    """

    method: str = "GET"
    path: str = "/"
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    path_params: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = {name.lower(): value for name, value in self.headers.items()}

    @property
    def accept_encoding(self) -> str:
        """Raw Accept-Encoding header value ("" when absent)."""
        return self.headers.get("accept-encoding", "")

    @property
    def is_head(self) -> bool:
        """HEAD requests get headers only, never a body."""
        return self.method == "HEAD"

    def get_header(self, name: str, default: str = "") -> str:
        """
        Get a header value (case-insensitive lookup).

        Example:
            request.get_header("If-Modified-Since")
            # Works because headers are stored lowercase
        """
        return self.headers.get(name.lower(), default)
