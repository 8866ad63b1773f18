"""
=============================================================================
CONTENT ENCODING
=============================================================================

Everything involved in choosing Content-Encoding for a static resource:

    accept.py       Accept-Encoding parsing → NegotiationContext
    resource.py     Resource and its compression capabilities
    locator.py      Precompressed .br / .gz siblings on disk
    compressor.py   In-memory gzip with the "is it worth it" check
    observer.py     Logging / counting hooks
    negotiator.py   The strategy state machine and serve_content()

=============================================================================
"""

from .accept import BROTLI, GZIP, NegotiationContext, parse_accept_encoding
from .compressor import CompressedStream, gzip_bytes, gzip_compress
from .locator import FileSiblingLocator
from .negotiator import Negotiator, Strategy, serve_content
from .observer import CountingObserver, LoggingObserver, NegotiationObserver
from .resource import Resource

__all__ = [
    "BROTLI",
    "GZIP",
    "NegotiationContext",
    "parse_accept_encoding",
    "CompressedStream",
    "gzip_bytes",
    "gzip_compress",
    "FileSiblingLocator",
    "Negotiator",
    "Strategy",
    "serve_content",
    "CountingObserver",
    "LoggingObserver",
    "NegotiationObserver",
    "Resource",
]
