"""
=============================================================================
HTTP PLUMBING
=============================================================================

The small slice of HTTP the negotiation layer needs:

    request.py       HTTPRequest (headers normalized to lowercase)
    response.py      HTTPResponse, the write-once response sink
    status_codes.py  HTTPStatus with reason phrases
    mime_types.py    Content-Type by file extension
    sniff.py         Content-Type by magic bytes
    content.py       ContentServer: conditional GET, HEAD, body delivery

=============================================================================
"""

from .request import HTTPRequest
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    parse_http_date,
    write_error,
    forbidden,
    not_found,
    method_not_allowed,
    internal_error,
)
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, content_type_by_extension
from .sniff import detect_content_type, determine_content_type
from .content import ContentServer

__all__ = [
    "HTTPRequest",
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "parse_http_date",
    "write_error",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "HTTPStatus",
    "get_mime_type",
    "content_type_by_extension",
    "detect_content_type",
    "determine_content_type",
    "ContentServer",
]
