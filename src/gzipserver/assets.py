"""
=============================================================================
BUILD-TIME ASSET PREPARATION
=============================================================================

Compression is cheapest when it happens once, before the first request.
This module produces the two things the negotiator can use for free:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  PRECOMPRESSION OUTPUTS                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   ON DISK: sibling files                                            │
    │       precompress_directory("dist/")                                │
    │       dist/app.js  →  dist/app.js.gz   (only if it is smaller)      │
    │                                                                     │
    │   IN MEMORY: assets with capabilities                               │
    │       store = AssetStore()                                          │
    │       store.add("app.js", data)                                     │
    │           → gzip_bytes recorded     (compresses well)               │
    │           → not_worth_compressing   (PNG, WOFF2, tiny files)        │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Both use level 9: it runs once, so the extra CPU is irrelevant.

Brotli siblings are produced by external build tooling; this module only
writes gzip.

=============================================================================
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .encoding.compressor import gzip_bytes
from .encoding.resource import Resource


logger = logging.getLogger(__name__)

BUILD_LEVEL = 9

# Text formats worth trying; binary formats are already compressed
DEFAULT_EXTENSIONS = {
    ".html", ".htm", ".css", ".js", ".mjs", ".json", ".map",
    ".svg", ".txt", ".xml", ".csv", ".md", ".wasm", ".ico",
}


@dataclass(frozen=True)
class Asset:
    """
    An in-memory file whose compression verdict is already known.

    Attributes:
        name: Logical name ("css/site.css")
        data: Original bytes
        mod_time: Modification time reported to clients
        gzip_data: gzip bytes, present only when they are smaller
    """

    name: str
    data: bytes = field(repr=False)
    mod_time: Optional[datetime] = None
    gzip_data: Optional[bytes] = field(default=None, repr=False)

    @property
    def worth_compressing(self) -> bool:
        return self.gzip_data is not None

    def open(self) -> Resource:
        """A fresh per-request Resource carrying the recorded capability."""
        return Resource.from_bytes(
            self.name,
            self.data,
            mod_time=self.mod_time,
            gzip_bytes=self.gzip_data,
            not_worth_compressing=not self.worth_compressing,
        )


def prepare_asset(
    name: str,
    data: bytes,
    mod_time: Optional[datetime] = None,
    level: int = BUILD_LEVEL,
) -> Asset:
    """Compress once and record either the gzip bytes or the verdict."""
    compressed = gzip_bytes(data, level)
    if len(compressed) < len(data):
        return Asset(name, data, mod_time, compressed)

    logger.debug(f"{name}: not worth compressing ({len(data)} → {len(compressed)} bytes)")
    return Asset(name, data, mod_time, None)


class AssetStore:
    """
    Name → Asset mapping, safe to read from many threads.

    Usage:
        store = AssetStore()
        store.add_file("dist/app.js", name="app.js")

        with store.open("app.js") as resource:
            negotiator.serve(resource, request, response)
    """

    def __init__(self, level: int = BUILD_LEVEL):
        self.level = level
        self._assets: Dict[str, Asset] = {}
        self._lock = threading.Lock()

    def add(self, name: str, data: bytes, mod_time: Optional[datetime] = None) -> Asset:
        asset = prepare_asset(name, data, mod_time, self.level)
        with self._lock:
            self._assets[name] = asset
        return asset

    def add_file(self, path: str | os.PathLike, name: Optional[str] = None) -> Asset:
        """
        Load a file from disk.

        Raises:
            OSError: If the file cannot be read.
        """
        path = Path(path)
        stat = path.stat()
        mod_time = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return self.add(name or path.name, path.read_bytes(), mod_time)

    def get(self, name: str) -> Optional[Asset]:
        return self._assets.get(name)

    def open(self, name: str) -> Resource:
        """
        Raises:
            KeyError: If no asset has that name.
        """
        asset = self._assets.get(name)
        if asset is None:
            raise KeyError(name)
        return asset.open()

    def __contains__(self, name: object) -> bool:
        return name in self._assets

    def __len__(self) -> int:
        return len(self._assets)


def precompress_file(path: str | os.PathLike, level: int = BUILD_LEVEL, suffix: str = ".gz") -> Optional[Path]:
    """
    Write `path + suffix` when gzip makes the file smaller.

    A stale sibling is removed when the file is no longer worth
    compressing, so the negotiator never serves outdated bytes.

    Returns:
        Path of the sibling written, or None.
    """
    source = Path(path)
    target = source.with_name(source.name + suffix)
    data = source.read_bytes()
    compressed = gzip_bytes(data, level)

    if len(compressed) >= len(data):
        if target.exists():
            target.unlink()
        logger.debug(f"Skipped {source}: not worth compressing")
        return None

    target.write_bytes(compressed)

    # Sibling shares the source's mtime so Last-Modified stays consistent
    stat = source.stat()
    os.utime(target, (stat.st_atime, stat.st_mtime))
    logger.info(f"Wrote {target} ({len(data)} → {len(compressed)} bytes)")
    return target


def precompress_directory(
    root: str | os.PathLike,
    extensions: Optional[Iterable[str]] = None,
    level: int = BUILD_LEVEL,
    suffix: str = ".gz",
) -> List[Path]:
    """
    Precompress every matching file under `root`.

    Existing siblings (and anything ending in .gz / .br) are never
    compressed again.

    Returns:
        Paths of the siblings written.
    """
    wanted = {ext.lower() for ext in (extensions or DEFAULT_EXTENSIONS)}
    skip = {suffix, ".gz", ".br"}
    written = []

    for path in sorted(Path(root).rglob("*")):
        if not path.is_file():
            continue
        extension = path.suffix.lower()
        if extension in skip or extension not in wanted:
            continue
        target = precompress_file(path, level, suffix)
        if target is not None:
            written.append(target)

    return written
