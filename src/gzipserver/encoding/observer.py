"""
=============================================================================
NEGOTIATION OBSERVERS
=============================================================================

Hooks the negotiator calls as it works through a request. They are
passed in, not hard-wired, so the same negotiator can log in production
and count in tests:

    negotiator = Negotiator(observer=LoggingObserver())    # default
    negotiator = Negotiator(observer=CountingObserver())   # assertions

Observers must not raise; they see the request, they never steer it.

=============================================================================
"""

import logging
from collections import Counter
from dataclasses import dataclass, field

from .accept import NegotiationContext


# Namespaced so it can be tuned separately from the rest of the package:
#   logging.getLogger("gzipserver.negotiation").setLevel(logging.DEBUG)
logger = logging.getLogger("gzipserver.negotiation")


class NegotiationObserver:
    """No-op base observer. Override the hooks you care about."""

    def request_started(self, name: str, context: NegotiationContext) -> None:
        pass

    def sibling_lookup(self, name: str, coding: str, found: bool) -> None:
        pass

    def compression_finished(self, name: str, original_size: int, compressed_size: int, worthwhile: bool) -> None:
        pass

    def compression_failed(self, name: str, error: Exception) -> None:
        pass

    def strategy_selected(self, name: str, strategy) -> None:
        pass


class LoggingObserver(NegotiationObserver):
    """Writes every decision to the gzipserver.negotiation logger."""

    def __init__(self, level: int = logging.DEBUG):
        self.level = level

    def request_started(self, name, context):
        logger.log(
            self.level,
            f"{name}: Accept-Encoding={context.accept_header!r} "
            f"accepts br={context.accepts('br')} gzip={context.accepts('gzip')}",
        )

    def sibling_lookup(self, name, coding, found):
        logger.log(self.level, f"{name}: {coding} sibling {'found' if found else 'not found'}")

    def compression_finished(self, name, original_size, compressed_size, worthwhile):
        verdict = "worthwhile" if worthwhile else "not worthwhile"
        logger.log(
            self.level,
            f"{name}: gzip {original_size} → {compressed_size} bytes ({verdict})",
        )

    def compression_failed(self, name, error):
        logger.warning(f"{name}: gzip compression failed, serving uncompressed: {error}")

    def strategy_selected(self, name, strategy):
        logger.log(self.level, f"{name}: strategy {strategy.value}")


@dataclass
class CountingObserver(NegotiationObserver):
    """
    Tallies decisions instead of logging them.

    Attributes:
        strategies: strategy → times selected
        compressions: number of on-the-fly compression passes
        sibling_lookups: (coding, found) → count
    """

    strategies: Counter = field(default_factory=Counter)
    compressions: int = 0
    sibling_lookups: Counter = field(default_factory=Counter)

    def sibling_lookup(self, name, coding, found):
        self.sibling_lookups[(coding, found)] += 1

    def compression_finished(self, name, original_size, compressed_size, worthwhile):
        self.compressions += 1

    def compression_failed(self, name, error):
        self.compressions += 1

    def strategy_selected(self, name, strategy):
        self.strategies[strategy] += 1
