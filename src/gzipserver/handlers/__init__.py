"""
=============================================================================
REQUEST HANDLERS
=============================================================================

StaticFileHandler / serve_static()
    - Serve files from a directory
    - Path traversal protection
    - Directory index (index.html)
    - Cache-Control headers
    - Content-Encoding negotiation (siblings, on-the-fly gzip)

    static = serve_static("/var/www/static", url_prefix="/static")
    response = static.handle(request)

=============================================================================
"""

from .static import StaticFileHandler, serve_static

__all__ = [
    "StaticFileHandler",
    "serve_static",
]
