"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The subset of status codes a static content server actually produces.

    200 OK                     Full body delivered (compressed or not)
    304 Not Modified           If-Modified-Since matched, no body
    403 Forbidden              Path escapes the static root
    404 Not Found              No such file
    405 Method Not Allowed     Anything other than GET / HEAD
    500 Internal Server Error  Stream could not be rewound after sniffing

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_MODIFIED.phrase
        'Not Modified'
    """

    OK = 200
    NO_CONTENT = 204
    NOT_MODIFIED = 304              # Cached copy is still valid
    FORBIDDEN = 403                 # Path traversal, directory listing
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    INTERNAL_SERVER_ERROR = 500     # Unrecoverable stream error

    @property
    def phrase(self) -> str:
        """Reason phrase used in the status line ("HTTP/1.1 200 OK")."""
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
