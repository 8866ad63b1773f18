"""
=============================================================================
ACCEPT-ENCODING NEGOTIATION CONTEXT
=============================================================================

The browser tells us what encodings it can decode:

    Accept-Encoding: gzip, deflate, br;q=0.9, zstd;q=0
                     │     │        │         │
                     │     │        │         └── q=0 means "never send zstd"
                     │     │        └── br, slightly less preferred
                     │     └── deflate
                     └── gzip (q defaults to 1.0)

For this server only two codings matter, "br" and "gzip", and only as a
yes/no question. The strategy order is fixed by the server (Brotli
siblings first, then gzip), so q-values are used to exclude an encoding
(q=0) but never to reorder the strategies.

=============================================================================
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


BROTLI = "br"
GZIP = "gzip"

# RFC 7230 section 4.2.3: recipients SHOULD treat x-gzip as gzip
_ALIASES = {"x-gzip": GZIP}


def parse_accept_encoding(value: str) -> Dict[str, float]:
    """
    Parse an Accept-Encoding header into {coding: q-value}.

    Codings are lowercased. A missing q defaults to 1.0; a malformed one
    counts as 0 (not acceptable). When a coding appears twice the last
    occurrence wins.

    Examples:
        >>> parse_accept_encoding("gzip, br;q=0.5")
        {'gzip': 1.0, 'br': 0.5}
        >>> parse_accept_encoding("")
        {}
    """
    codings: Dict[str, float] = {}

    for part in value.split(","):
        pieces = [piece.strip() for piece in part.split(";")]
        coding = pieces[0].lower()
        if not coding:
            continue
        coding = _ALIASES.get(coding, coding)

        quality = 1.0
        for param in pieces[1:]:
            if not param.lower().startswith("q="):
                continue
            try:
                quality = float(param[2:])
            except ValueError:
                quality = 0.0
            if not 0.0 <= quality <= 1.0:
                quality = 0.0

        codings[coding] = quality

    return codings


@dataclass(frozen=True)
class NegotiationContext:
    """
    Per-request view of what the client accepts.

    Attributes:
        accepted: Codings the client accepts (q > 0)
        accept_header: Raw Accept-Encoding value, echoed into Vary
        fixed_encoding: Content-Encoding already set by an earlier
                        pipeline stage, or None when none
                        (an empty value still counts as fixed)
    """

    accepted: FrozenSet[str] = frozenset()
    accept_header: str = ""
    fixed_encoding: Optional[str] = None

    @property
    def encoding_fixed(self) -> bool:
        """True when an earlier stage already chose the encoding."""
        return self.fixed_encoding is not None

    def accepts(self, coding: str) -> bool:
        """Check whether the client accepts `coding`."""
        return coding.lower() in self.accepted

    @classmethod
    def from_header(cls, accept_encoding: str, fixed_encoding: Optional[str] = None) -> "NegotiationContext":
        codings = parse_accept_encoding(accept_encoding)
        accepted = frozenset(coding for coding, quality in codings.items() if quality > 0)
        return cls(
            accepted=accepted,
            accept_header=accept_encoding,
            fixed_encoding=fixed_encoding,
        )

    @classmethod
    def from_request(cls, request: HTTPRequest, response: HTTPResponse) -> "NegotiationContext":
        """
        Build the context for one request.

        The response is consulted once, for a Content-Encoding that an
        earlier stage may already have set.
        """
        fixed = None
        if response.has_header("Content-Encoding"):
            fixed = response.get_header("Content-Encoding")
        return cls.from_header(request.accept_encoding, fixed_encoding=fixed)
