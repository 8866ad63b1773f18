"""
=============================================================================
GZIP COMPRESSOR
=============================================================================

Compresses a whole stream in memory and decides whether it was worth it.

    input stream ──► GzipFile(level) ──► BytesIO buffer
                          │
                          ▼
               compressed >= original ?
                  │                 │
                 yes                no
                  │                 │
                  ▼                 ▼
      NotWorthCompressingError   CompressedStream (rewound to 0)

=============================================================================
WHY BUFFER INSTEAD OF STREAM?
=============================================================================

Headers must be final before the first body byte is sent, and whether we
send "Content-Encoding: gzip" depends on the FINAL compressed size. The
only way to know that size is to finish compressing first. Static files
are small enough that holding one compressed copy in memory is fine.

=============================================================================
WHY CAN GZIP MAKE THINGS BIGGER?
=============================================================================

gzip adds an 18-byte header and trailer. Data that is already compressed
(PNG, JPEG, WOFF2, ZIP) or tiny has no redundancy left for DEFLATE to
remove, so the output ends up LARGER than the input. Equal size is also
rejected: the client would spend CPU decompressing for no saved bytes.

=============================================================================
"""

import gzip
import io
from typing import BinaryIO

from ..errors import NotWorthCompressingError


DEFAULT_LEVEL = 6           # zlib's own default: good ratio, good speed
CHUNK_SIZE = 64 * 1024


class CompressedStream(io.BytesIO):
    """
    Seekable reader over gzip bytes, positioned at offset 0.

    Attributes:
        original_size: Bytes read from the input
        compressed_size: Bytes of gzip output
    """

    def __init__(self, data: bytes, original_size: int):
        super().__init__(data)
        self.original_size = original_size
        self.compressed_size = len(data)


def gzip_bytes(data: bytes, level: int = DEFAULT_LEVEL) -> bytes:
    """
    gzip-compress `data` deterministically.

    mtime=0 keeps the header free of timestamps, so identical input
    always yields identical output (stable ETags, reproducible builds).
    """
    return gzip.compress(data, compresslevel=level, mtime=0)


def gzip_compress(stream: BinaryIO, level: int = DEFAULT_LEVEL) -> CompressedStream:
    """
    Compress everything remaining in `stream`.

    Args:
        stream: Binary stream, read from its current position to EOF
        level: gzip compression level (1-9)

    Returns:
        CompressedStream over the gzip bytes.

    Raises:
        NotWorthCompressingError: If compressed size >= original size.
        OSError: If reading the input fails.
    """
    buffer = io.BytesIO()
    original_size = 0

    with gzip.GzipFile(fileobj=buffer, mode="wb", compresslevel=level, mtime=0) as gz:
        while True:
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            gz.write(chunk)
            original_size += len(chunk)

    compressed_size = buffer.tell()
    if compressed_size >= original_size:
        raise NotWorthCompressingError(original_size, compressed_size)

    return CompressedStream(buffer.getvalue(), original_size)
