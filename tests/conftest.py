"""
pytest configuration and fixtures.
"""

import gzip
import io
import os
from pathlib import Path

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gzipserver import CountingObserver, HTTPRequest, Negotiator


# Highly repetitive text: gzip shrinks it dramatically
COMPRESSIBLE = (b"body { color: red; margin: 0 auto; }\n" * 300)[:10_000]

# Random bytes: gzip can only make them bigger
INCOMPRESSIBLE = os.urandom(4096)


@pytest.fixture
def compressible() -> bytes:
    return COMPRESSIBLE


@pytest.fixture
def incompressible() -> bytes:
    return INCOMPRESSIBLE


@pytest.fixture
def observer() -> CountingObserver:
    """Observer that counts decisions."""
    return CountingObserver()


@pytest.fixture
def negotiator(observer: CountingObserver) -> Negotiator:
    """Negotiator wired to the counting observer."""
    return Negotiator(observer=observer)


def _make_request(accept_encoding=None, method="GET", **headers) -> HTTPRequest:
    all_headers = {name.replace("_", "-"): value for name, value in headers.items()}
    if accept_encoding is not None:
        all_headers["Accept-Encoding"] = accept_encoding
    return HTTPRequest(method=method, path="/", headers=all_headers)


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    """
    Temporary static tree:

        style.css      + style.css.br + style.css.gz
        app.js         + app.js.gz
        page.html      (no siblings)
        logo.png       (random bytes, no siblings)
        docs/index.html
    """
    (tmp_path / "style.css").write_bytes(COMPRESSIBLE)
    (tmp_path / "style.css.br").write_bytes(b"BROTLI-BYTES-FOR-STYLE")
    (tmp_path / "style.css.gz").write_bytes(gzip.compress(COMPRESSIBLE, mtime=0))

    (tmp_path / "app.js").write_bytes(b"console.log('hello');\n" * 200)
    (tmp_path / "app.js.gz").write_bytes(b"GZIP-SIBLING-FOR-APP")

    (tmp_path / "page.html").write_bytes(b"<html><body>" + b"<p>hello</p>" * 200 + b"</body></html>")
    (tmp_path / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n" + INCOMPRESSIBLE)

    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "index.html").write_bytes(b"<html>docs</html>")

    return tmp_path


class UnseekableStream(io.RawIOBase):
    """Readable stream whose seek always fails."""

    def __init__(self, data: bytes):
        self._inner = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        chunk = self._inner.read(len(buffer))
        buffer[:len(chunk)] = chunk
        return len(chunk)

    def seekable(self) -> bool:
        return False

    def seek(self, offset, whence=0):
        raise io.UnsupportedOperation("seek")


class FailingStream(io.RawIOBase):
    """Seekable stream whose reads fail `failures` times once past `fail_at`."""

    def __init__(self, data: bytes, fail_at: int = 0, failures: int = 1):
        self._inner = io.BytesIO(data)
        self._fail_at = fail_at
        self.failures = failures

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        position = self._inner.tell()
        if self.failures > 0 and position >= self._fail_at:
            self.failures -= 1
            raise OSError("disk on fire")
        limit = len(buffer)
        if self.failures > 0:
            limit = min(limit, self._fail_at - position)
        chunk = self._inner.read(limit)
        buffer[:len(chunk)] = chunk
        return len(chunk)

    def seekable(self) -> bool:
        return True

    def seek(self, offset, whence=0):
        return self._inner.seek(offset, whence)


@pytest.fixture
def make_request():
    """Factory: make_request("br, gzip", If_Modified_Since=...) -> HTTPRequest."""
    return _make_request


@pytest.fixture
def unseekable():
    """Factory for streams that cannot seek."""
    return UnseekableStream


@pytest.fixture
def failing_stream():
    """Factory for streams whose reads fail."""
    return FailingStream
