"""Route models shared by providers, the aggregator and the API."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from payroute.models.types import parse_usd


class RouteType(str, Enum):
    """How a route settles on-chain."""

    STANDARD = "standard"
    COMPOSER = "composer"  # Multi-step swap + bridge composed by the aggregator
    CONTRACT_CALL = "contract-call"  # Bridge followed by a destination contract call


class RouteOption(BaseModel):
    """One candidate execution path for an intent.

    The id is unique within a single response and encodes enough for the
    execution builder to re-derive the route. It is not stable across
    requests because quotes expire.
    """

    id: str
    path: str = Field(description="Human-readable hops, e.g. 'Base USDC -> Arbitrum USDC'.")
    fee: str = Field(description="Fee with currency, e.g. '$0.12' or '0.50 USDC'.")
    estimated_time: str = Field(alias="estimatedTime")
    provider: str
    route_type: RouteType = Field(default=RouteType.STANDARD, alias="routeType")

    model_config = {"populate_by_name": True}

    @property
    def fee_value(self) -> Decimal | None:
        """Numeric fee, or None if the fee string carries no number."""
        return parse_usd(self.fee)


@dataclass(frozen=True)
class QuoteResult:
    """Result of asking one provider for routes.

    An empty result with an error is a descriptive placeholder ("no vault
    configured") that the aggregator surfaces to the user; an empty result
    without an error simply means the provider had nothing to offer. A
    found result may carry a note describing what was found.

    Examples:
        QuoteResult.found([route])
        QuoteResult.empty("Source token not supported: FOO")
    """

    routes: list[RouteOption] = field(default_factory=list)
    error: str | None = None
    note: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.routes

    @classmethod
    def found(cls, routes: list[RouteOption], note: str | None = None) -> "QuoteResult":
        return cls(routes=list(routes), note=note)

    @classmethod
    def empty(cls, reason: str | None = None) -> "QuoteResult":
        return cls(routes=[], error=reason)
