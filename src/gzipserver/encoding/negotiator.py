"""
=============================================================================
CONTENT-ENCODING NEGOTIATOR
=============================================================================

Decides, for one request, which bytes to send and how they are encoded.
It tries the cheapest correct option first and stops at the first one
that applies:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     STRATEGY ORDER                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   1. Content-Encoding already set?        → pass through           │
    │   2. accepts br   and  file.br exists?    → send sibling, br       │
    │   3. accepts gzip and  file.gz exists?    → send sibling, gzip     │
    │   4. does not accept gzip?                → send as is             │
    │   5. marked not worth compressing?        → send as is             │
    │      ── determine Content-Type (extension, else sniff) ──          │
    │   6. has precomputed gzip bytes?          → send them, gzip        │
    │   7. gzip on the fly smaller?             → send it, gzip          │
    │   8. otherwise                            → send as is             │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Brotli is only ever served from a sibling. Compressing Brotli per request
at a useful quality costs far more CPU than it saves in bandwidth.

=============================================================================
WHY DETERMINE CONTENT-TYPE BEFORE COMPRESSING?
=============================================================================

The content server fills in a missing Content-Type by sniffing the bytes
it is given. After compression those bytes start with the gzip magic
number, so the sniff would say "application/x-gzip". Strategies 6-8
therefore settle the type on the original stream first. A stream that
cannot be rewound after sniffing is the one request-fatal error (500).

=============================================================================
HEADERS BEFORE BODY
=============================================================================

Every branch finishes its header changes (Content-Encoding, Vary,
Content-Type) before handing a stream to the content server, which
commits the response. After that the headers are frozen.

=============================================================================
"""

import io
import logging
from enum import Enum
from typing import BinaryIO, Optional

from ..config import CompressionConfig
from ..errors import NotWorthCompressingError, StreamSeekError
from ..http.content import ContentServer
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, write_error
from ..http.sniff import determine_content_type
from ..http.status_codes import HTTPStatus
from .accept import BROTLI, GZIP, NegotiationContext
from .compressor import gzip_compress
from .locator import FileSiblingLocator
from .observer import LoggingObserver, NegotiationObserver
from .resource import Resource


logger = logging.getLogger(__name__)


class Strategy(Enum):
    """The delivery strategy chosen for a request."""

    PASS_THROUGH = "pass-through"
    PRECOMPRESSED_BROTLI = "precompressed-brotli"
    PRECOMPRESSED_GZIP = "precompressed-gzip"
    GZIP_NOT_ACCEPTED = "gzip-not-accepted"
    NOT_WORTH_COMPRESSING = "not-worth-compressing"
    PRECOMPUTED_GZIP = "precomputed-gzip"
    COMPRESSED = "compressed"
    UNCOMPRESSED = "uncompressed"
    SEEK_FAILED = "seek-failed"

    @property
    def content_encoding(self) -> Optional[str]:
        """Content-Encoding this strategy sends (None for identity)."""
        return _STRATEGY_ENCODINGS.get(self)


_STRATEGY_ENCODINGS = {
    Strategy.PRECOMPRESSED_BROTLI: BROTLI,
    Strategy.PRECOMPRESSED_GZIP: GZIP,
    Strategy.PRECOMPUTED_GZIP: GZIP,
    Strategy.COMPRESSED: GZIP,
}

# Sibling strategies in the order they are tried
_SIBLING_STRATEGIES = [
    (BROTLI, Strategy.PRECOMPRESSED_BROTLI),
    (GZIP, Strategy.PRECOMPRESSED_GZIP),
]


class Negotiator:
    """
    Picks a delivery strategy and hands the chosen stream to the content
    server.

    Holds no per-request state, so one instance can be shared by every
    worker thread.

    Usage:
        negotiator = Negotiator()

        with Resource.open("/var/www/app.js", name="app.js") as resource:
            response = HTTPResponse()
            strategy = negotiator.serve(resource, request, response)
    """

    def __init__(
        self,
        config: Optional[CompressionConfig] = None,
        locator: Optional[FileSiblingLocator] = None,
        content_server: Optional[ContentServer] = None,
        observer: Optional[NegotiationObserver] = None,
    ):
        """
        Args:
            config: Compression settings (validated here).
            locator: Finds precompressed siblings. Defaults to a
                     FileSiblingLocator built from config, or none at all
                     when config.serve_precompressed is False.
            content_server: Delivers the final stream.
            observer: Receives every decision. Defaults to logging.
        """
        self.config = config or CompressionConfig()
        self.config.validate()

        if locator is None and self.config.serve_precompressed:
            locator = FileSiblingLocator(self.config.sibling_suffixes)
        self.locator = locator

        self.content_server = content_server or ContentServer(self.config.sniff_length)
        self.observer = observer or LoggingObserver()

    def serve(
        self,
        resource: Resource,
        request: HTTPRequest,
        response: HTTPResponse,
        context: Optional[NegotiationContext] = None,
    ) -> Strategy:
        """
        Write `resource` into `response` using the first strategy that
        applies.

        Args:
            resource: The file to serve (its stream is not closed here)
            request: The incoming request
            response: Uncommitted response; written exactly once
            context: Precomputed negotiation context (derived from
                     request and response when omitted)

        Returns:
            The strategy that produced the response.
        """
        if context is None:
            context = NegotiationContext.from_request(request, response)
        self.observer.request_started(resource.name, context)

        # An earlier stage already encoded the body. Never double-encode.
        if context.encoding_fixed:
            return self._deliver(Strategy.PASS_THROUGH, resource, request, response, resource.stream)

        for coding, strategy in _SIBLING_STRATEGIES:
            if not context.accepts(coding):
                continue
            sibling = self._open_sibling(resource, coding)
            if sibling is None:
                continue
            with sibling:
                response.set_header("Content-Encoding", coding)
                response.add_header("Vary", context.accept_header)
                return self._deliver(strategy, resource, request, response, sibling)

        if not context.accepts(GZIP):
            return self._deliver(Strategy.GZIP_NOT_ACCEPTED, resource, request, response, resource.stream)

        if resource.not_worth_compressing:
            response.clear_encoding()
            return self._deliver(Strategy.NOT_WORTH_COMPRESSING, resource, request, response, resource.stream)

        if not response.has_header("Content-Type"):
            try:
                content_type = determine_content_type(
                    resource.name, resource.stream, self.config.sniff_length
                )
            except StreamSeekError as e:
                logger.error(f"Cannot serve {resource.name}: {e}")
                self.observer.strategy_selected(resource.name, Strategy.SEEK_FAILED)
                write_error(
                    response,
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                    "500 Internal Server Error\n\nseeker can't seek",
                )
                return Strategy.SEEK_FAILED
            response.set_header("Content-Type", content_type)

        if resource.has_gzip_bytes:
            response.set_header("Content-Encoding", GZIP)
            return self._deliver(
                Strategy.PRECOMPUTED_GZIP, resource, request, response,
                io.BytesIO(resource.gzip_bytes),
            )

        compressed = self._compress(resource)
        if compressed is not None:
            response.set_header("Content-Encoding", GZIP)
            return self._deliver(Strategy.COMPRESSED, resource, request, response, compressed)

        response.clear_encoding()
        return self._deliver(Strategy.UNCOMPRESSED, resource, request, response, resource.stream)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _open_sibling(self, resource: Resource, coding: str) -> Optional[BinaryIO]:
        if self.locator is None or not resource.path:
            return None
        sibling = self.locator.find(resource.path, coding)
        self.observer.sibling_lookup(resource.name, coding, sibling is not None)
        return sibling

    def _compress(self, resource: Resource) -> Optional[BinaryIO]:
        """
        gzip the resource stream; None when it is not worth it or fails.

        Either way the original stream may have been consumed. The content
        server rewinds it before reading.
        """
        try:
            compressed = gzip_compress(resource.stream, self.config.compression_level)
        except NotWorthCompressingError as e:
            self.observer.compression_finished(
                resource.name, e.original_size, e.compressed_size, worthwhile=False
            )
            return None
        except OSError as e:
            self.observer.compression_failed(resource.name, e)
            return None

        self.observer.compression_finished(
            resource.name, compressed.original_size, compressed.compressed_size, worthwhile=True
        )
        return compressed

    def _deliver(
        self,
        strategy: Strategy,
        resource: Resource,
        request: HTTPRequest,
        response: HTTPResponse,
        stream: BinaryIO,
    ) -> Strategy:
        self.observer.strategy_selected(resource.name, strategy)
        self.content_server.serve(response, request, resource.name, resource.mod_time, stream)
        return strategy



def serve_content(
    response: HTTPResponse,
    request: HTTPRequest,
    resource: Resource,
    negotiator: Optional[Negotiator] = None,
) -> Strategy:
    """
    Library entry point: negotiate and serve one resource.

    Example:
        with Resource.open(path, name="app.js") as resource:
            serve_content(response, request, resource)
    """
    return (negotiator or Negotiator()).serve(resource, request, response)
