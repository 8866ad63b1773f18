"""
=============================================================================
RESOURCE
=============================================================================

A Resource is one static file as seen by a single request: a name, where
it lives on disk, when it last changed, and a seekable stream of bytes.

Two optional capabilities let the negotiator skip work it already knows
the answer to. They are decided when the resource is built (usually at
build time, see assets.py) and never inspected by type at request time:

    ┌───────────────────────────┬─────────────────────────────────────────┐
    │ Capability                │ Effect on negotiation                   │
    ├───────────────────────────┼─────────────────────────────────────────┤
    │ gzip_bytes                │ send these bytes with gzip encoding,    │
    │                           │ no compression work at request time     │
    │ not_worth_compressing     │ gzip never shrinks this file, always    │
    │                           │ send it uncompressed                    │
    └───────────────────────────┴─────────────────────────────────────────┘

The two are mutually exclusive: a file cannot both have useful gzip bytes
and be not worth compressing.

=============================================================================
"""

import io
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO, Optional


@dataclass
class Resource:
    """
    A seekable byte source plus what we know about compressing it.

    Attributes:
        name: Logical name, used for extension-based type lookup
        stream: Seekable binary stream positioned at the start
        mod_time: Last modification time (None if unknown)
        path: Filesystem path used to locate precompressed siblings
              ("" for in-memory resources, which have none)
        gzip_bytes: Precomputed gzip encoding of the content
        not_worth_compressing: gzip output is not smaller than the content

    Raises:
        ValueError: If both capabilities are set.
    """

    name: str
    stream: BinaryIO
    mod_time: Optional[datetime] = None
    path: str = ""
    gzip_bytes: Optional[bytes] = field(default=None, repr=False)
    not_worth_compressing: bool = False

    def __post_init__(self):
        if self.gzip_bytes is not None and self.not_worth_compressing:
            raise ValueError(
                f"resource {self.name!r} cannot carry gzip bytes and be "
                f"marked not worth compressing"
            )

    @property
    def has_gzip_bytes(self) -> bool:
        return self.gzip_bytes is not None

    @classmethod
    def from_bytes(
        cls,
        name: str,
        data: bytes,
        mod_time: Optional[datetime] = None,
        **capabilities,
    ) -> "Resource":
        """In-memory resource over `data`."""
        return cls(name=name, stream=io.BytesIO(data), mod_time=mod_time, **capabilities)

    @classmethod
    def open(cls, path: str | os.PathLike, name: Optional[str] = None) -> "Resource":
        """
        Open a file on disk as a resource.

        The caller owns the stream and must close it (the resource is a
        context manager).

        Raises:
            OSError: If the file cannot be opened or stat'ed.
        """
        path = os.fspath(path)
        stream = open(path, "rb")
        try:
            stat = os.fstat(stream.fileno())
        except OSError:
            stream.close()
            raise
        mod_time = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return cls(
            name=name or os.path.basename(path),
            stream=stream,
            mod_time=mod_time,
            path=path,
        )

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> "Resource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
