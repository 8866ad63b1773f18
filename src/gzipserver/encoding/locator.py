"""
=============================================================================
PRECOMPRESSED SIBLING LOCATOR
=============================================================================

Build pipelines often ship compressed copies next to each asset:

    static/
    ├── app.js
    ├── app.js.br      ← Brotli, quality 11, made once at build time
    └── app.js.gz      ← gzip -9, made once at build time

Serving a sibling costs nothing at request time and usually beats
anything we could afford to compute per request (Brotli at high quality
is far too slow to run on the fly).

A sibling that is missing, is a directory, or cannot be opened is simply
"not found". The negotiator then moves on to its next strategy.

=============================================================================
"""

import logging
import os
from typing import BinaryIO, Dict, Optional

from .accept import BROTLI, GZIP


logger = logging.getLogger(__name__)

DEFAULT_SUFFIXES = {
    BROTLI: ".br",
    GZIP: ".gz",
}


class FileSiblingLocator:
    """
    Finds precompressed variants at `path + suffix` on the filesystem.

    Usage:
        locator = FileSiblingLocator()
        sibling = locator.find("/var/www/app.js", "br")
        if sibling is not None:
            with sibling:
                ...
    """

    def __init__(self, suffixes: Optional[Dict[str, str]] = None):
        self.suffixes = dict(suffixes or DEFAULT_SUFFIXES)

    def sibling_path(self, path: str, coding: str) -> Optional[str]:
        """Derived path for `coding`, or None if the coding is unknown."""
        suffix = self.suffixes.get(coding)
        if not path or suffix is None:
            return None
        return path + suffix

    def find(self, path: str, coding: str) -> Optional[BinaryIO]:
        """
        Open the `coding` sibling of `path` for reading.

        Returns:
            An open binary file the caller must close, or None.
        """
        candidate = self.sibling_path(path, coding)
        if candidate is None:
            return None

        try:
            if not os.path.isfile(candidate):
                return None
            return open(candidate, "rb")
        except OSError as e:
            logger.debug(f"Sibling {candidate} unavailable: {e}")
            return None
