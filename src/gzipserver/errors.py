"""
=============================================================================
ERRORS
=============================================================================

Every failure the negotiation pipeline can meet, and what happens to it:

    ┌──────────────────────────────┬──────────┬───────────────────────────┐
    │ Error                        │ Fatal?   │ Outcome                   │
    ├──────────────────────────────┼──────────┼───────────────────────────┤
    │ sibling missing / unreadable │ no       │ try the next strategy     │
    │ NotWorthCompressingError     │ no       │ serve uncompressed        │
    │ OSError while compressing    │ no       │ serve uncompressed        │
    │ StreamSeekError              │ YES      │ 500 Internal Server Error │
    └──────────────────────────────┴──────────┴───────────────────────────┘

A missing sibling is not an exception at all: the locator answers None.
Only the seek failure reaches the client, and it always happens before
any body byte has been written.

=============================================================================
"""


class NegotiationError(Exception):
    """
    Base class for errors raised while choosing a representation.

    Attributes:
        message: Human-readable description
        status_code: HTTP status the error maps to when it reaches a client
    """

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotWorthCompressingError(NegotiationError):
    """
    gzip output was not strictly smaller than the input.

    Ties count as not worthwhile: the client would pay decompression
    for zero saved bytes.

    Handled inside the negotiator and never surfaced to a client, so the
    inherited status_code is unused.
    """

    def __init__(self, original_size: int, compressed_size: int):
        super().__init__(
            f"not worth gzip compressing: original size {original_size}, "
            f"compressed size {compressed_size}",
        )
        self.original_size = original_size
        self.compressed_size = compressed_size


class StreamSeekError(NegotiationError):
    """The resource stream could not be rewound after sniffing its type."""

    def __init__(self, message: str = "seeker can't seek"):
        super().__init__(message, status_code=500)


class ResponseCommittedError(RuntimeError):
    """Headers or body were modified after the response was written."""
