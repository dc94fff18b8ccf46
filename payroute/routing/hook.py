"""Same-chain stablecoin swaps through a Uniswap v4 stable-swap hook.

The hook prices stable pairs near 1:1 with a flat 1 bp fee, so quoting is
a local computation; no network call is needed.
"""

from __future__ import annotations

from decimal import Decimal

from payroute.constants import HOOK_FEE_BPS, STABLE_TOKENS, get_token_address
from payroute.models import QuoteResult, RouteOption, RouteType
from payroute.models.types import format_usd
from payroute.routing.base import RouteQuery, describe_leg

HOOK_ROUTE_PREFIX = "v4-hook-"
HOOK_PROVIDER_NAME = "Uniswap v4"
HOOK_ESTIMATED_TIME = "~15s"


def is_hook_route_id(route_id: str) -> bool:
    return route_id.startswith(HOOK_ROUTE_PREFIX)


def hook_fee(amount: Decimal) -> Decimal:
    """Fee charged by the hook on an input amount."""
    return amount * HOOK_FEE_BPS / Decimal(10_000)


class SameChainHookProvider:
    """Offers the hook route for same-chain stable-to-stable swaps."""

    name = "v4-hook"
    precedence = 10

    def __init__(self, routers: dict[str, str]):
        """Initialize with the deployed hook routers.

        Args:
            routers: Chain name -> hook router address
        """
        self.routers = {chain.lower(): address for chain, address in routers.items()}

    def router_for(self, chain: str) -> str | None:
        return self.routers.get(chain)

    def applies_to(self, query: RouteQuery) -> bool:
        intent = query.intent
        if not query.is_same_chain or not intent.amount:
            return False
        if intent.from_token == intent.to_token:
            return False
        if intent.from_token not in STABLE_TOKENS or intent.to_token not in STABLE_TOKENS:
            return False
        if get_token_address(intent.from_token, query.from_chain) is None:
            return False
        if get_token_address(intent.to_token, query.to_chain) is None:
            return False
        return self.router_for(query.from_chain) is not None

    async def find_routes(self, query: RouteQuery) -> QuoteResult:
        if not self.applies_to(query):
            return QuoteResult.empty()

        intent = query.intent
        fee = hook_fee(Decimal(intent.amount or "0"))
        route = RouteOption(
            id=f"{HOOK_ROUTE_PREFIX}0",
            path=(
                f"{describe_leg(query.from_chain, intent.from_token or '')} -> "
                f"{describe_leg(query.to_chain, intent.to_token or '')} via stable hook"
            ),
            fee=format_usd(fee),
            estimated_time=HOOK_ESTIMATED_TIME,
            provider=HOOK_PROVIDER_NAME,
            route_type=RouteType.STANDARD,
        )
        return QuoteResult.found([route])


__all__ = ["SameChainHookProvider", "hook_fee", "is_hook_route_id"]
