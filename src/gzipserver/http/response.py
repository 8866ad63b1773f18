"""
=============================================================================
HTTP RESPONSE
=============================================================================

The response object is the "sink" every negotiation strategy writes into.
It is filled in two phases, and the order matters:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     RESPONSE LIFECYCLE                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   1. HEADERS (mutable)                                              │
    │      Negotiator sets Content-Encoding, Content-Type, appends Vary   │
    │                                                                     │
    │   2. write(body, status)          ← happens exactly once            │
    │      Content server commits status, Content-Length and body         │
    │                                                                     │
    │   3. COMMITTED (frozen)                                             │
    │      Any further header change or write raises                      │
    │      ResponseCommittedError                                         │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

On a real socket, headers go out before the first body byte, so they can
never change afterwards. The committed flag enforces the same rule on
this in-memory representation.

=============================================================================
HEADER NAMES
=============================================================================

Header names are case-insensitive (RFC 7230). Lookups ignore case, and
setting a header replaces any existing spelling of it, so a response can
never carry both "Content-Encoding" and "content-encoding".

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Dict, Any, Union
import json

from ..errors import ResponseCommittedError
from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Attributes:
        status: HTTP status code (enum)
        headers: Response headers, canonical spelling as first set
        body: Response body bytes
        version: HTTP version for the status line
        committed: True once write() has been called
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"
    committed: bool = field(default=False, repr=False)

    @property
    def status_line(self) -> str:
        """Status line, e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {self.status} {self.status.phrase}"

    # =========================================================================
    # HEADER ACCESS
    # =========================================================================

    def _find_key(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key in self.headers:
            if key.lower() == lowered:
                return key
        return None

    def _check_not_committed(self) -> None:
        if self.committed:
            raise ResponseCommittedError("response already written; headers are frozen")

    def has_header(self, name: str) -> bool:
        """Check whether a header is present (case-insensitive)."""
        return self._find_key(name) is not None

    def get_header(self, name: str, default: str = "") -> str:
        """Get a header value (case-insensitive lookup)."""
        key = self._find_key(name)
        return self.headers[key] if key is not None else default

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a response header, replacing any existing value.

        Returns self for method chaining:
            response.set_header("X-One", "1").set_header("X-Two", "2")

        Raises:
            ResponseCommittedError: If the response was already written.
        """
        self._check_not_committed()
        existing = self._find_key(name)
        if existing is not None and existing != name:
            del self.headers[existing]
        self.headers[name] = value
        return self

    def add_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Append a value to a list-valued header such as Vary.

        Values are joined with ", " which is equivalent to sending the
        header twice (RFC 7230 section 3.2.2).
        """
        self._check_not_committed()
        current = self.get_header(name)
        return self.set_header(name, value if not current else f"{current}, {value}")

    def del_header(self, name: str) -> "HTTPResponse":
        """Remove a header if present."""
        self._check_not_committed()
        key = self._find_key(name)
        if key is not None:
            del self.headers[key]
        return self

    def clear_encoding(self) -> "HTTPResponse":
        """Mark the body as unencoded by removing Content-Encoding."""
        return self.del_header("Content-Encoding")

    # =========================================================================
    # BODY
    # =========================================================================

    def write(self, body: Union[str, bytes], status: HTTPStatus = HTTPStatus.OK) -> "HTTPResponse":
        """
        Commit status and body. Allowed exactly once per response.

        Strings are encoded as UTF-8.

        Raises:
            ResponseCommittedError: On a second write.
        """
        if self.committed:
            raise ResponseCommittedError("response already written")
        self.status = status
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        self.committed = True
        return self

    def to_bytes(self, server_name: str = "gzipserver/1.0") -> bytes:
        """
        Serialize the response to bytes for sending over a socket.

            HTTP/1.1 200 OK\\r\\n
            Content-Encoding: gzip\\r\\n
            Content-Length: 27\\r\\n       ← auto-calculated if missing
            Date: Wed, 01 Jan 2026 ...\\r\\n
            Server: gzipserver/1.0\\r\\n
            \\r\\n
            <body bytes>
        """
        response_headers = dict(self.headers)

        # 304 and 204 never carry a body, so no Content-Length either
        if self.status not in (HTTPStatus.NOT_MODIFIED, HTTPStatus.NO_CONTENT):
            if not self.has_header("Content-Length"):
                response_headers["Content-Length"] = str(len(self.body))

        if not self.has_header("Date"):
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if not self.has_header("Server"):
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for the handler's own (non-negotiated) responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.NOT_FOUND)
            .json({"error": "File not found"})
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self.body(json.dumps(data, separators=(",", ":")))

    def build(self) -> HTTPResponse:
        """Build a committed HTTPResponse."""
        response = HTTPResponse(headers=dict(self._headers))
        return response.write(self._body, self._status)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Wed, 01 Jan 2026 12:00:00 GMT

    Naive datetimes are taken to be UTC.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def parse_http_date(value: str) -> Optional[datetime]:
    """
    Parse an HTTP-date into an aware UTC datetime.

    Returns None for anything unparseable; a malformed If-Modified-Since
    header is simply ignored (RFC 7232 section 3.3).
    """
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def write_error(response: HTTPResponse, status: HTTPStatus, message: str) -> HTTPResponse:
    """
    Write a plain-text error into an uncommitted response.

    Content-Encoding is dropped because the error body is never encoded,
    and nosniff stops browsers guessing a type for the message.
    """
    response.clear_encoding()
    response.set_header("Content-Type", "text/plain; charset=utf-8")
    response.set_header("X-Content-Type-Options", "nosniff")
    return response.write(message + "\n", status)


def forbidden(message: str = "Forbidden") -> HTTPResponse:
    """403 Forbidden: the path is outside the static root or not listable."""
    return ResponseBuilder().status(HTTPStatus.FORBIDDEN).json({"error": message}).build()


def not_found(message: str = "Not Found") -> HTTPResponse:
    """404 Not Found."""
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).json({"error": message}).build()


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """405 Method Not Allowed, with the Allow header RFC 7231 requires."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .json({"error": "Method Not Allowed", "allowed": allowed_methods})
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500 Internal Server Error. Keep the message generic."""
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).json({"error": message}).build()
