"""
=============================================================================
CONTENT SERVER
=============================================================================

The last step of every negotiation strategy. By the time a stream gets
here the negotiator has already decided WHICH bytes to send and set
Content-Encoding accordingly. The content server only knows how to send
a seekable stream correctly:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     ContentServer.serve()                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   1. Content-Type still unset?  → extension, else sniff + rewind    │
    │   2. Last-Modified from mod_time                                    │
    │   3. If-Modified-Since >= mod_time?  → 304, no body                 │
    │   4. Rewind, read the whole stream                                  │
    │   5. Content-Length, then body (HEAD: length only)                  │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Byte ranges are not implemented: a Range header is ignored and the full
representation is returned with 200, which RFC 7233 permits.

=============================================================================
"""

import logging
from datetime import datetime, timezone
from typing import BinaryIO, Optional

from ..errors import StreamSeekError
from .request import HTTPRequest
from .response import HTTPResponse, format_http_date, parse_http_date, write_error
from .sniff import SNIFF_LENGTH, determine_content_type, rewind
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _as_utc(mod_time: Optional[datetime]) -> Optional[datetime]:
    """Normalize to aware UTC, or None for unknown / zero times."""
    if mod_time is None:
        return None
    if mod_time.tzinfo is None:
        mod_time = mod_time.replace(tzinfo=timezone.utc)
    mod_time = mod_time.astimezone(timezone.utc)
    if mod_time <= _UNIX_EPOCH:
        return None
    return mod_time


class ContentServer:
    """
    Delivers a seekable stream into an HTTPResponse.

    Usage:
        server = ContentServer()
        server.serve(response, request, "style.css", mtime, stream)
    """

    def __init__(self, sniff_length: int = SNIFF_LENGTH):
        self.sniff_length = sniff_length

    def serve(
        self,
        response: HTTPResponse,
        request: HTTPRequest,
        name: str,
        mod_time: Optional[datetime],
        stream: BinaryIO,
    ) -> HTTPResponse:
        """
        Write headers and body for `stream` into `response`.

        Never overwrites a Content-Type or Content-Encoding set by the
        caller. Read and seek failures become a 500 response.
        """
        mod_time = _as_utc(mod_time)

        try:
            if not response.has_header("Content-Type"):
                response.set_header(
                    "Content-Type",
                    determine_content_type(name, stream, self.sniff_length),
                )

            if mod_time is not None:
                response.set_header("Last-Modified", format_http_date(mod_time))
                if self._not_modified(request, mod_time):
                    return response.write(b"", HTTPStatus.NOT_MODIFIED)

            rewind(stream)
            body = stream.read()
        except (StreamSeekError, OSError) as e:
            logger.error(f"Error serving {name}: {e}")
            return write_error(
                response,
                HTTPStatus.INTERNAL_SERVER_ERROR,
                "500 Internal Server Error\n\nfailed to read content",
            )

        response.set_header("Content-Length", str(len(body)))
        if request.is_head:
            return response.write(b"", HTTPStatus.OK)
        return response.write(body, HTTPStatus.OK)

    def _not_modified(self, request: HTTPRequest, mod_time: datetime) -> bool:
        """
        Evaluate If-Modified-Since (RFC 7232 section 3.3).

        Only GET and HEAD are conditional. HTTP dates have one-second
        resolution, so sub-second parts of mod_time are ignored.
        """
        if request.method not in ("GET", "HEAD"):
            return False

        since = parse_http_date(request.get_header("If-Modified-Since"))
        if since is None:
            return False

        return mod_time.replace(microsecond=0) <= since

