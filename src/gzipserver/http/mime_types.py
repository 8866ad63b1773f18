"""
=============================================================================
MIME TYPE DETECTION (by extension)
=============================================================================

The first and cheapest way to learn a file's Content-Type: look at its
extension. Only when this lookup comes back empty does the negotiator
fall back to sniffing the first bytes of the file (see sniff.py).

    style.css   → text/css; charset=utf-8
    logo.png    → image/png
    README      → ""  (no extension, caller must sniff)
    data.xyz    → ""  (unknown extension, caller must sniff)

Why return "" instead of application/octet-stream? Because an unknown
extension says nothing about the bytes. A file called "LICENSE" is
plain text, and sniffing will find that out. Defaulting here would
hide it.

=============================================================================
"""

from pathlib import PurePosixPath
from typing import Optional


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Maps file extensions (lowercase, with dot) to MIME types.
#
# =============================================================================

MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",      # Modern standard (was application/javascript)
    ".mjs": "text/javascript",     # ES modules
    ".json": "application/json",
    ".map": "application/json",    # Source maps
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",       # XML text, compresses well
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # Fonts (woff/woff2 are already compressed)
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".br": "application/x-brotli",
    ".tar": "application/x-tar",

    ".wasm": "application/wasm",
}

# Non text/* types that are still text and get a charset parameter
TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
}


def get_mime_type(path: str | PurePosixPath, default: Optional[str] = None) -> Optional[str]:
    """
    Get the bare MIME type for a name based on its extension.

    Args:
        path: File path or logical name with extension
        default: Returned when the extension is unknown

    Examples:
        >>> get_mime_type("style.css")
        'text/css'
        >>> get_mime_type("unknown.xyz") is None
        True
    """
    extension = PurePosixPath(str(path)).suffix.lower()  # .PNG → .png
    return MIME_TYPES.get(extension, default)


def is_text_type(mime_type: str) -> bool:
    """True for text/* and the text-based application types."""
    return mime_type.startswith("text/") or mime_type in TEXT_APPLICATION_TYPES


def content_type_by_extension(name: str | PurePosixPath, charset: str = "utf-8") -> str:
    """
    Full Content-Type header value for a name, or "" when unknown.

    Examples:
        >>> content_type_by_extension("page.html")
        'text/html; charset=utf-8'
        >>> content_type_by_extension("image.png")
        'image/png'
        >>> content_type_by_extension("Makefile")
        ''
    """
    mime_type = get_mime_type(name)
    if mime_type is None:
        return ""

    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"

    return mime_type
