"""Provider protocol and shared helpers for route discovery."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

from payroute.constants import DEFAULT_SLIPPAGE, display_chain
from payroute.models import Intent, QuoteResult, RecipientProfile

_DURATION_RE = re.compile(
    r"(\d+(?:\.\d+)?)\s*(s|sec|secs|seconds?|m|min|mins|minutes?)\b", re.IGNORECASE
)


@dataclass(frozen=True)
class RouteQuery:
    """Everything a provider needs to quote one intent.

    The intent arrives with preferences already applied and both chains
    filled in.

    Attributes:
        intent: Normalized intent (chains and tokens resolved)
        recipient: Resolved recipient address (may be None for swaps to self)
        from_address: Sender address, if known
        slippage: Slippage tolerance as a fraction
        profile: Recipient profile, when the recipient was a resolved name
        base_url: Base URL of the current request, for relative paywall URLs
    """

    intent: Intent
    recipient: str | None = None
    from_address: str | None = None
    slippage: float = DEFAULT_SLIPPAGE
    profile: RecipientProfile | None = None
    base_url: str | None = None

    @property
    def from_chain(self) -> str:
        return self.intent.from_chain or ""

    @property
    def to_chain(self) -> str:
        return self.intent.to_chain or ""

    @property
    def is_same_chain(self) -> bool:
        return self.from_chain == self.to_chain


class RouteProvider(Protocol):
    """Protocol for route providers.

    Providers return QuoteResult.empty(...) when they have nothing to offer;
    exceptions are hard failures the aggregator absorbs as zero routes.
    Lower precedence values sort first in merged results.
    """

    name: str
    precedence: int

    def applies_to(self, query: RouteQuery) -> bool:
        """Cheap check whether this provider can serve the query at all."""
        ...

    async def find_routes(self, query: RouteQuery) -> QuoteResult:
        """Quote the query."""
        ...


def format_duration(seconds: float | None, default: str = "~3 min") -> str:
    """Render an execution duration ("~45s", "3 min")."""
    if seconds is None or seconds <= 0:
        return default
    if seconds < 60:
        return f"~{int(math.ceil(seconds))}s"
    return f"{int(math.ceil(seconds / 60))} min"


def parse_duration_seconds(text: str | None) -> float | None:
    """Inverse of format_duration ("~15s" -> 15, "3 min" -> 180); None if unknown."""
    if not text:
        return None
    match = _DURATION_RE.search(text)
    if match is None:
        return None
    value = float(match.group(1))
    unit = match.group(2).lower()
    return value * 60 if unit.startswith("m") else value


def sum_usd(costs: list[dict[str, Any]] | None) -> Decimal:
    """Sum the amountUSD field of LI.FI cost entries, ignoring bad values."""
    total = Decimal(0)
    for cost in costs or []:
        try:
            total += Decimal(str(cost.get("amountUSD") or 0))
        except ArithmeticError:
            continue
    return total


def describe_leg(chain: str, token: str) -> str:
    return f"{display_chain(chain)} {token}"


__all__ = [
    "RouteProvider",
    "RouteQuery",
    "describe_leg",
    "format_duration",
    "parse_duration_seconds",
    "sum_usd",
]
