"""
=============================================================================
CONFIGURATION
=============================================================================

Tunables for content negotiation. Everything has a sensible default, so
most applications never touch this:

    negotiator = Negotiator()                                  # defaults
    negotiator = Negotiator(CompressionConfig(compression_level=9))
    negotiator = Negotiator(CompressionConfig.from_env())      # 12-factor

=============================================================================
CHOOSING A COMPRESSION LEVEL
=============================================================================

    Level 1:  Fastest, lowest ratio      (CPU-bound, high traffic)
    Level 6:  Balanced (default)
    Level 9:  Best ratio, slowest        (build-time precompression)

On-the-fly compression runs on every request that has no precompressed
sibling or precomputed bytes, so the default stays at 6. Build-time
tooling (assets.py) uses 9 because it runs once.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass


_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class CompressionConfig:
    """
    Configuration for the negotiator and its collaborators.
    """

    # ─────────────────────────────────────────────────────────────────────
    # COMPRESSION
    # ─────────────────────────────────────────────────────────────────────

    compression_level: int = 6
    """gzip level for on-the-fly compression (1-9)."""

    sniff_length: int = 512
    """
    Bytes read to sniff a Content-Type when the extension is unknown.
    512 is what browsers use; more buys nothing.
    """

    # ─────────────────────────────────────────────────────────────────────
    # PRECOMPRESSED SIBLINGS
    # ─────────────────────────────────────────────────────────────────────

    serve_precompressed: bool = True
    """Look for .br / .gz siblings next to each file."""

    brotli_suffix: str = ".br"
    gzip_suffix: str = ".gz"

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG shows every negotiation decision)."""

    @classmethod
    def from_env(cls) -> "CompressionConfig":
        """
        Create configuration from environment variables.

            GZIPSERVER_LEVEL          gzip level (default: 6)
            GZIPSERVER_SNIFF_LENGTH   sniff prefix length (default: 512)
            GZIPSERVER_PRECOMPRESSED  serve siblings (default: true)
            GZIPSERVER_LOG_LEVEL      logging level (default: INFO)
        """
        return cls(
            compression_level=int(os.getenv("GZIPSERVER_LEVEL", "6")),
            sniff_length=int(os.getenv("GZIPSERVER_SNIFF_LENGTH", "512")),
            serve_precompressed=os.getenv("GZIPSERVER_PRECOMPRESSED", "true").strip().lower() in _TRUE_VALUES,
            log_level=os.getenv("GZIPSERVER_LOG_LEVEL", "INFO"),
        )

    @property
    def sibling_suffixes(self) -> dict[str, str]:
        return {"br": self.brotli_suffix, "gzip": self.gzip_suffix}

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by the Negotiator on construction, so a bad value fails at
        startup instead of on the first request.
        """
        if not 1 <= self.compression_level <= 9:
            raise ValueError(f"Invalid compression_level: {self.compression_level}. Must be 1-9.")

        if self.sniff_length < 1:
            raise ValueError("sniff_length must be >= 1")

        for suffix in (self.brotli_suffix, self.gzip_suffix):
            if not suffix.startswith(".") or len(suffix) < 2:
                raise ValueError(f"Invalid sibling suffix: {suffix!r}")

        if self.brotli_suffix == self.gzip_suffix:
            raise ValueError("brotli_suffix and gzip_suffix must differ")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Invalid log_level: {self.log_level}")

    def configure_logging(self) -> None:
        """Configure the root logger and the gzipserver logger."""
        level = getattr(logging, self.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("gzipserver").setLevel(level)
