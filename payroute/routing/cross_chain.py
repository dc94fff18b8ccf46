"""Cross-chain (and same-chain) routes from the LI.FI aggregator."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog

from payroute.constants import (
    ZERO_ADDRESS,
    get_chain_id,
    get_token_address,
    get_token_decimals,
)
from payroute.errors import UpstreamError
from payroute.models import QuoteResult, RouteOption, RouteType
from payroute.models.types import format_usd, to_base_units
from payroute.routing.base import RouteQuery, describe_leg, format_duration, sum_usd
from payroute.routing.cache import RouteCache
from payroute.routing.lifi import LifiClient

logger = structlog.get_logger()

LIFI_ROUTE_PREFIX = "lifi"


def lifi_route_id(index: int, tool: str) -> str:
    return f"{LIFI_ROUTE_PREFIX}-{index}-{tool}"


def parse_lifi_route_id(route_id: str) -> str | None:
    """Return the tool key encoded in a lifi-<n>-<tool> id, or None."""
    parts = route_id.split("-", 2)
    if len(parts) != 3 or parts[0] != LIFI_ROUTE_PREFIX or not parts[1].isdigit():
        return None
    return parts[2] or None


def _step_tool_name(step: dict[str, Any]) -> str:
    details = step.get("toolDetails") or {}
    return str(details.get("name") or step.get("tool") or step.get("type") or "unknown")


def _route_tool_key(steps: list[dict[str, Any]], cross_chain: bool) -> str:
    """Tool to pin when re-quoting: the bridge for cross-chain routes.

    Multi-step routes may open with a source-chain swap, so the bridge is
    looked up by step type (top level first, then included steps).
    """
    if not steps:
        return "any"
    if cross_chain:
        for step in steps:
            if step.get("type") == "cross" and step.get("tool"):
                return str(step["tool"])
        for step in steps:
            for included in step.get("includedSteps") or []:
                if included.get("type") == "cross" and included.get("tool"):
                    return str(included["tool"])
    return str(steps[0].get("tool") or "any")


def _is_multi_step(steps: list[dict[str, Any]]) -> bool:
    if len(steps) > 1:
        return True
    return any(len(step.get("includedSteps") or []) > 1 for step in steps)


class CrossChainProvider:
    """Quotes transfers and swaps through LI.FI advanced routes.

    Handles same-chain swaps as well; LI.FI picks exchanges or bridges as
    needed. Results are memoized in the shared RouteCache.
    """

    name = "lifi"
    precedence = 20

    def __init__(self, lifi: LifiClient, cache: RouteCache):
        self.lifi = lifi
        self.cache = cache

    def applies_to(self, query: RouteQuery) -> bool:
        intent = query.intent
        return bool(intent.amount and intent.from_token and intent.to_token)

    async def find_routes(self, query: RouteQuery) -> QuoteResult:
        intent = query.intent
        from_token = intent.from_token or ""
        to_token = intent.to_token or ""

        from_chain_id = get_chain_id(query.from_chain)
        to_chain_id = get_chain_id(query.to_chain)
        if from_chain_id is None:
            return QuoteResult.empty(f"Source chain not supported: {query.from_chain}")
        if to_chain_id is None:
            return QuoteResult.empty(f"Destination chain not supported: {query.to_chain}")

        from_address = get_token_address(from_token, query.from_chain)
        to_address = get_token_address(to_token, query.to_chain)
        if from_address is None:
            return QuoteResult.empty(
                f"Source token not supported: {from_token} on {query.from_chain}"
            )
        if to_address is None:
            return QuoteResult.empty(
                f"Destination token not supported: {to_token} on {query.to_chain}"
            )

        amount_wei = to_base_units(intent.amount or "0", get_token_decimals(from_token))
        sender = query.from_address or ZERO_ADDRESS
        receiver = query.recipient or sender

        key = RouteCache.make_key(
            provider=self.name,
            from_chain=from_chain_id,
            to_chain=to_chain_id,
            from_token=from_address,
            to_token=to_address,
            amount=amount_wei,
            sender=sender.lower(),
            recipient=receiver.lower(),
            slippage=query.slippage,
        )
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(
                "lifi_routes_cache_hit", from_chain=query.from_chain, to_chain=query.to_chain
            )
            return cached

        body = {
            "fromChainId": from_chain_id,
            "toChainId": to_chain_id,
            "fromTokenAddress": from_address,
            "toTokenAddress": to_address,
            "fromAmount": str(amount_wei),
            "fromAddress": sender,
            "toAddress": receiver,
            "options": {"slippage": query.slippage, "order": "CHEAPEST"},
        }
        try:
            raw_routes = await self.lifi.advanced_routes(body)
        except UpstreamError as e:
            return QuoteResult.empty(str(e))

        routes = [self._to_option(i, raw, query) for i, raw in enumerate(raw_routes)]
        result = (
            QuoteResult.found(routes)
            if routes
            else QuoteResult.empty(
                f"No LI.FI routes for {from_token} on {query.from_chain} -> "
                f"{to_token} on {query.to_chain}"
            )
        )
        if routes:
            self.cache.put(key, result)
        logger.info(
            "lifi_routes_found",
            from_chain=query.from_chain,
            to_chain=query.to_chain,
            count=len(routes),
        )
        return result

    def _to_option(self, index: int, raw: dict[str, Any], query: RouteQuery) -> RouteOption:
        steps: list[dict[str, Any]] = list(raw.get("steps") or [])
        tools = [_step_tool_name(step) for step in steps] or ["LI.FI"]
        tool_key = _route_tool_key(steps, not query.is_same_chain)

        fee = Decimal(0)
        duration = 0.0
        for step in steps:
            estimate = step.get("estimate") or {}
            fee += sum_usd(estimate.get("gasCosts")) + sum_usd(estimate.get("feeCosts"))
            duration += float(estimate.get("executionDuration") or 0)

        intent = query.intent
        path = (
            f"{describe_leg(query.from_chain, intent.from_token or '')} -> "
            f"{describe_leg(query.to_chain, intent.to_token or '')} via {' + '.join(tools)}"
        )
        return RouteOption(
            id=lifi_route_id(index, tool_key),
            path=path,
            fee=format_usd(fee),
            estimated_time=format_duration(duration),
            provider=f"LI.FI ({', '.join(tools)})",
            route_type=RouteType.COMPOSER if _is_multi_step(steps) else RouteType.STANDARD,
        )


__all__ = ["CrossChainProvider", "lifi_route_id", "parse_lifi_route_id"]
