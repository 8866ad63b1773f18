"""
=============================================================================
GZIPSERVER - Content-Encoding Negotiation for Static Files
=============================================================================

Serve every static file in the smallest encoding the client can read,
without doing more work per request than necessary.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      REQUEST FLOW                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   HTTPRequest ──► StaticFileHandler ──► Resource                    │
    │                                            │                        │
    │                                            ▼                        │
    │                                       Negotiator                    │
    │                      ┌─────────────────────┼─────────────────┐      │
    │                      ▼                     ▼                 ▼      │
    │               .br / .gz sibling    precomputed bytes    gzip now    │
    │                      └─────────────────────┼─────────────────┘      │
    │                                            ▼                        │
    │                                      ContentServer                  │
    │                               (If-Modified-Since, HEAD)             │
    │                                            │                        │
    │                                            ▼                        │
    │                                       HTTPResponse                  │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
QUICK START
=============================================================================

    from gzipserver import HTTPRequest, serve_static

    static = serve_static("/var/www/static", url_prefix="/static")

    request = HTTPRequest(
        method="GET",
        path="/static/app.js",
        headers={"Accept-Encoding": "br, gzip"},
    )
    response = static.handle(request)
    response.headers["Content-Encoding"]      # "br" if app.js.br exists

Lower level, for any byte source:

    from gzipserver import HTTPResponse, Resource, serve_content

    response = HTTPResponse()
    serve_content(response, request, Resource.from_bytes("data.json", data))

=============================================================================
"""

__version__ = "1.0.0"

from .config import CompressionConfig
from .errors import (
    NegotiationError,
    NotWorthCompressingError,
    ResponseCommittedError,
    StreamSeekError,
)
from .http import ContentServer, HTTPRequest, HTTPResponse, HTTPStatus
from .encoding import (
    CountingObserver,
    FileSiblingLocator,
    LoggingObserver,
    NegotiationContext,
    NegotiationObserver,
    Negotiator,
    Resource,
    Strategy,
    gzip_compress,
    serve_content,
)
from .handlers import StaticFileHandler, serve_static
from .assets import AssetStore, prepare_asset, precompress_directory, precompress_file

__all__ = [
    "__version__",
    "CompressionConfig",
    "NegotiationError",
    "NotWorthCompressingError",
    "ResponseCommittedError",
    "StreamSeekError",
    "ContentServer",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "CountingObserver",
    "FileSiblingLocator",
    "LoggingObserver",
    "NegotiationContext",
    "NegotiationObserver",
    "Negotiator",
    "Resource",
    "Strategy",
    "gzip_compress",
    "serve_content",
    "StaticFileHandler",
    "serve_static",
    "AssetStore",
    "prepare_asset",
    "precompress_directory",
    "precompress_file",
]
