"""
=============================================================================
CONTENT-TYPE SNIFFING
=============================================================================

When a file's extension tells us nothing, we look at its first bytes.
This is a cut-down version of the WHATWG MIME Sniffing algorithm
(https://mimesniff.spec.whatwg.org/) that browsers use:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        SNIFFING ORDER                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   1. Markup      "<!DOCTYPE HTML", "<html", "<?xml" ...             │
    │   2. Documents   "%PDF-", "%!PS-Adobe-"                             │
    │   3. BOMs        FE FF / FF FE / EF BB BF  → text with charset      │
    │   4. Magic       PNG, GIF, JPEG, WebP, fonts, gzip, zip, wasm ...   │
    │   5. Text?       no control bytes → text/plain; charset=utf-8       │
    │   6. Otherwise   application/octet-stream                           │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY SNIFF BEFORE COMPRESSING?
=============================================================================

Once a body is gzip-compressed, its first bytes are always 1F 8B 08.
Sniffing after compression would label every file "application/x-gzip".
So the negotiator determines the type on the ORIGINAL stream, then rewinds
it so the full file can still be read. If the rewind fails, the prefix we
consumed is lost and the request cannot be served (StreamSeekError).

=============================================================================
"""

import io
import logging
from typing import BinaryIO, Callable, List, Tuple

from ..errors import StreamSeekError
from .mime_types import content_type_by_extension


logger = logging.getLogger(__name__)

# Browsers never look further than this
SNIFF_LENGTH = 512

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Leading whitespace skipped before markup signatures
_WHITESPACE = b"\t\n\x0c\r "

# A tag name is terminated by one of these
_TAG_TERMINATORS = b" >"

_HTML_SIGNATURES = [
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
    b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
    b"<BODY", b"<BR", b"<P", b"<!--",
]

_EXACT_SIGNATURES: List[Tuple[bytes, str]] = [
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),

    # Byte order marks
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", "text/plain; charset=utf-8"),

    # Images
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"BM", "image/bmp"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),

    # Audio / video
    (b".snd", "audio/basic"),
    (b"FORM", "audio/aiff"),
    (b"ID3", "audio/mpeg"),
    (b"OggS\x00", "application/ogg"),
    (b"MThd\x00\x00\x00\x06", "audio/midi"),
    (b"\x1a\x45\xdf\xa3", "video/webm"),

    # Fonts
    (b"\x00\x01\x00\x00", "font/ttf"),
    (b"OTTO", "font/otf"),
    (b"ttcf", "font/collection"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),

    # Archives
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),

    (b"\x00asm", "application/wasm"),
]

# RIFF containers: "RIFF" + 4 size bytes + form type
_RIFF_FORMS = [
    (b"WEBPVP", "image/webp"),
    (b"WAVE", "audio/wave"),
    (b"AVI ", "video/avi"),
]


def _match_html(data: bytes) -> bool:
    stripped = data.lstrip(_WHITESPACE)
    upper = stripped.upper()
    for signature in _HTML_SIGNATURES:
        if not upper.startswith(signature):
            continue
        following = stripped[len(signature):len(signature) + 1]
        if following and following in _TAG_TERMINATORS:
            return True
    return False


def _match_xml(data: bytes) -> bool:
    return data.lstrip(_WHITESPACE).startswith(b"<?xml")


def _match_riff(data: bytes) -> str:
    if len(data) < 12 or not data.startswith(b"RIFF"):
        return ""
    for form, mime_type in _RIFF_FORMS:
        if data[8:8 + len(form)] == form:
            return mime_type
    return ""


def _match_mp4(data: bytes) -> bool:
    # ISO base media file: a leading "ftyp" box listing an mp4 brand
    if len(data) < 12:
        return False
    box_size = int.from_bytes(data[:4], "big")
    if len(data) < box_size or box_size % 4 != 0:
        return False
    if data[4:8] != b"ftyp":
        return False
    for start in range(8, box_size, 4):
        if start == 12:
            continue  # minor version, not a brand
        if data[start:start + 3] == b"mp4":
            return True
    return False


def _is_binary_byte(byte: int) -> bool:
    return (
        byte <= 0x08
        or byte == 0x0B
        or 0x0E <= byte <= 0x1A
        or 0x1C <= byte <= 0x1F
    )


def detect_content_type(data: bytes) -> str:
    """
    Guess a Content-Type from the first bytes of a body.

    Only the first SNIFF_LENGTH bytes are considered. Always returns a
    valid type; application/octet-stream when nothing matches.

    Examples:
        >>> detect_content_type(b"<!DOCTYPE html><html>...")
        'text/html; charset=utf-8'
        >>> detect_content_type(b"\\x89PNG\\r\\n\\x1a\\n....")
        'image/png'
        >>> detect_content_type(b"just some words")
        'text/plain; charset=utf-8'
    """
    data = data[:SNIFF_LENGTH]

    if _match_html(data):
        return "text/html; charset=utf-8"
    if _match_xml(data):
        return "text/xml; charset=utf-8"

    for signature, mime_type in _EXACT_SIGNATURES:
        if data.startswith(signature):
            return mime_type

    riff_type = _match_riff(data)
    if riff_type:
        return riff_type

    if _match_mp4(data):
        return "video/mp4"

    if not any(_is_binary_byte(byte) for byte in data):
        return "text/plain; charset=utf-8"

    return DEFAULT_CONTENT_TYPE


def read_prefix(stream: BinaryIO, limit: int = SNIFF_LENGTH) -> bytes:
    """
    Read up to `limit` bytes, looping over short reads.

    A read error ends the prefix early; whatever was read so far is still
    good enough to sniff.
    """
    chunks = []
    remaining = limit
    while remaining > 0:
        try:
            chunk = stream.read(remaining)
        except OSError as e:
            logger.debug(f"Read error while sniffing, using partial prefix: {e}")
            break
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def rewind(stream: BinaryIO) -> None:
    """
    Seek a stream back to offset 0.

    Raises:
        StreamSeekError: If the stream is not seekable.
    """
    try:
        stream.seek(0, io.SEEK_SET)
    except (OSError, ValueError) as e:
        # io.UnsupportedOperation is both an OSError and a ValueError
        raise StreamSeekError(f"seeker can't seek: {e}") from e


def determine_content_type(
    name: str,
    stream: BinaryIO,
    limit: int = SNIFF_LENGTH,
    by_extension: Callable[[str], str] = content_type_by_extension,
) -> str:
    """
    Content-Type for a resource: extension first, then a sniffed prefix.

    When sniffing was needed the stream is left rewound to offset 0.

    Raises:
        StreamSeekError: If the stream cannot be rewound after sniffing.
    """
    content_type = by_extension(name)
    if content_type:
        return content_type

    prefix = read_prefix(stream, limit)
    content_type = detect_content_type(prefix)
    rewind(stream)
    return content_type
