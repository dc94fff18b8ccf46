"""Route aggregation and ranking.

Per request the aggregator walks a fixed sequence of states:

    received -> resolving_recipient (skipped for plain addresses)
             -> fanning_out_providers -> filtering -> responding

Recipient preferences fill gaps in the intent but never override it. All
applicable providers are queried concurrently; a provider that fails or
times out contributes no routes, and the response is still built from
whatever the others returned.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog

from payroute.chain.balances import BalanceScanner
from payroute.config import Settings
from payroute.constants import (
    DEFAULT_SLIPPAGE,
    INTERMEDIATE_STABLE,
    NATIVE_CHAINS,
    VAULT_ASSET,
    VAULT_CHAIN,
    get_token_address,
    normalize_chain,
)
from payroute.consolidation.planner import ConsolidationPlanner
from payroute.identity.resolver import PreferenceResolver, requires_resolution
from payroute.models import (
    AgentResponse,
    EnsProfile,
    Intent,
    IntentAction,
    QuoteResult,
    RecipientProfile,
    RouteOption,
    TargetConfig,
)
from payroute.routing.base import RouteProvider, RouteQuery
from payroute.routing.registry import ProviderRegistry

logger = structlog.get_logger()


@dataclass
class FanOutResult:
    """Merged output of every provider queried for one intent."""

    routes: list[RouteOption] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


def dedupe_routes(routes: list[RouteOption]) -> list[RouteOption]:
    """Drop repeated ids and repeated (provider, path, fee); first one wins."""
    seen_ids: set[str] = set()
    seen_shapes: set[tuple[str, str, str]] = set()
    unique: list[RouteOption] = []
    for route in routes:
        shape = (route.provider, route.path, route.fee)
        if route.id in seen_ids or shape in seen_shapes:
            continue
        seen_ids.add(route.id)
        seen_shapes.add(shape)
        unique.append(route)
    return unique


def apply_max_fee(
    routes: list[RouteOption], max_fee: Decimal | None
) -> tuple[list[RouteOption], bool]:
    """Filter routes above the fee cap.

    Routes whose fee cannot be parsed are kept. If the cap would remove
    every route the unfiltered list is returned instead.

    Returns:
        (routes, reverted) where reverted is True when the cap was ignored
    """
    if max_fee is None or not routes:
        return routes, False
    within = [r for r in routes if r.fee_value is None or r.fee_value <= max_fee]
    if within:
        return within, False
    return routes, True


def max_fee_note(max_fee: str) -> str:
    return (
        f"Note: No routes found within the recipient's preferred max fee of ${max_fee}. "
        "Showing all available routes."
    )


def paywall_intent(intent: Intent, route: RouteOption) -> Intent:
    """Copy the amount, token and chain a paywall demands into the intent."""
    amount, _, token = route.fee.partition(" ")
    chain = route.path.rsplit(" on ", 1)[-1] if " on " in route.path else intent.to_chain
    return intent.model_copy(
        update={
            "amount": amount,
            "from_token": token.upper(),
            "to_token": token.upper(),
            "from_chain": normalize_chain(chain),
            "to_chain": normalize_chain(chain),
        }
    )


def _infer_chain(token: str | None, candidate: str) -> str:
    """Keep the candidate chain unless the token only exists elsewhere."""
    if token and get_token_address(token, candidate) is None and token in NATIVE_CHAINS:
        return NATIVE_CHAINS[token]
    return candidate


class RouteAggregator:
    """Turns an intent into a ranked, filtered list of routes."""

    def __init__(
        self,
        resolver: PreferenceResolver,
        registry: ProviderRegistry,
        settings: Settings,
        balance_scanner: BalanceScanner | None = None,
    ):
        self.resolver = resolver
        self.registry = registry
        self.settings = settings
        self.balance_scanner = balance_scanner
        self.planner = ConsolidationPlanner(self.find_swap_routes, settings.gold_spot_price_usd)

    def fill_intent(self, intent: Intent, profile: RecipientProfile | None = None) -> Intent:
        """Apply recipient defaults and make both chains concrete."""
        to_token = intent.to_token or (profile.preferred_token if profile else None)
        to_chain = intent.to_chain or (profile.preferred_chain if profile else None)
        if intent.action == IntentAction.TRANSFER and not to_token:
            to_token = intent.from_token
        if intent.action == IntentAction.CONSOLIDATE and not to_token:
            to_token = INTERMEDIATE_STABLE
        if intent.action in (IntentAction.DEPOSIT, IntentAction.YIELD):
            # Vault deposits always settle as the vault asset on the vault chain
            to_token, to_chain = VAULT_ASSET, VAULT_CHAIN

        from_chain = normalize_chain(intent.from_chain) or _infer_chain(
            intent.from_token, self.settings.default_chain
        )
        if to_chain:
            to_chain = normalize_chain(to_chain)
        else:
            to_chain = _infer_chain(to_token, from_chain)

        return intent.model_copy(
            update={"to_token": to_token, "from_chain": from_chain, "to_chain": to_chain}
        )

    async def handle(
        self,
        intent: Intent,
        *,
        user_address: str | None = None,
        slippage: float | None = None,
        base_url: str | None = None,
    ) -> AgentResponse:
        """Resolve, fan out, filter and describe routes for one intent."""
        log = logger.bind(action=intent.action.value)
        log.info("request_received", to=intent.to_address)

        profile: RecipientProfile | None = None
        resolution_note = ""
        recipient = intent.to_address
        if requires_resolution(intent.to_address):
            log.info("resolving_recipient", name=intent.to_address)
            profile = await self.resolver.resolve(intent.to_address or "")
            if not profile.is_resolved:
                return AgentResponse(
                    content=(
                        f'Could not resolve "{intent.to_address}". '
                        "Please check the name and try again."
                    ),
                    intent=self.fill_intent(intent),
                )
            recipient = profile.address
            resolution_note = self._resolution_note(intent.to_address or "", profile)

        filled = self.fill_intent(intent, profile)
        effective_slippage = self._effective_slippage(slippage, profile)
        ens_profile = self._ens_profile(profile)

        if filled.action == IntentAction.CONSOLIDATE:
            response = await self._consolidate(filled, user_address)
        elif filled.action == IntentAction.PAY_VIA_PAYWALL and not filled.url:
            response = AgentResponse(
                content=(
                    "No URL provided for the paywall payment. "
                    "Please specify the URL you want to access."
                ),
                intent=filled,
            )
        else:
            query = RouteQuery(
                intent=filled,
                recipient=recipient,
                from_address=user_address,
                slippage=effective_slippage,
                profile=profile,
                base_url=base_url,
            )
            response = await self._route(query, profile, log)

        if resolution_note:
            response.content = f"{resolution_note}\n\n{response.content}"
        if profile is not None:
            response.resolved_address = profile.address
            response.ens_profile = ens_profile
        log.info("responding", routes=len(response.routes or []))
        return response

    async def find_swap_routes(self, intent: Intent, from_address: str) -> list[RouteOption]:
        """Fan out a swap to the sender's own address (used by consolidation)."""
        query = RouteQuery(
            intent=self.fill_intent(intent),
            recipient=from_address,
            from_address=from_address,
            slippage=DEFAULT_SLIPPAGE,
        )
        return (await self.fan_out(query)).routes

    async def fan_out(self, query: RouteQuery) -> FanOutResult:
        """Query every applicable provider concurrently and merge in precedence order."""
        providers = [
            p for p in self.registry.providers_for(query.intent.action) if p.applies_to(query)
        ]
        results = await asyncio.gather(*(self._call_provider(p, query) for p in providers))

        merged = FanOutResult()
        for result in results:
            merged.routes.extend(result.routes)
            if result.error:
                merged.errors.append(result.error)
            if result.note:
                merged.notes.append(result.note)
        merged.routes = dedupe_routes(merged.routes)
        logger.info(
            "route_fanout_complete",
            providers=[p.name for p in providers],
            routes=len(merged.routes),
            errors=len(merged.errors),
        )
        return merged

    async def _call_provider(self, provider: RouteProvider, query: RouteQuery) -> QuoteResult:
        try:
            return await asyncio.wait_for(
                provider.find_routes(query), timeout=self.settings.provider_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning("provider_timeout", provider=provider.name)
            return QuoteResult.empty()
        except Exception as e:
            logger.warning("provider_failed", provider=provider.name, error=str(e))
            return QuoteResult.empty()

    async def _route(
        self, query: RouteQuery, profile: RecipientProfile | None, log: Any
    ) -> AgentResponse:
        intent = query.intent
        log.info("fanning_out_providers", from_chain=query.from_chain, to_chain=query.to_chain)
        result = await self.fan_out(query)

        log.info("filtering", candidates=len(result.routes))
        max_fee = profile.max_fee_usd if profile else None
        routes, reverted = apply_max_fee(result.routes, max_fee)

        content = self._summary(intent, query.recipient, result)
        if not routes and intent.action != IntentAction.PAY_VIA_PAYWALL:
            if result.errors:
                content += "\n\nNo routes found: " + "; ".join(result.errors)
            else:
                content += "\n\nNo routes found for this request."
        if reverted and profile is not None:
            content += "\n\n" + max_fee_note(profile.max_fee or "")

        if intent.action == IntentAction.PAY_VIA_PAYWALL and routes:
            intent = paywall_intent(intent, routes[0])
        return AgentResponse(content=content, intent=intent, routes=routes)

    async def _consolidate(self, intent: Intent, user_address: str | None) -> AgentResponse:
        if not user_address:
            return AgentResponse(
                content="Connect a wallet so I can scan your balances for consolidation.",
                intent=intent,
            )
        if self.balance_scanner is None:
            return AgentResponse(
                content="Balance scanning is not available, so I can't plan a consolidation.",
                intent=intent,
            )

        target = TargetConfig(
            preferred_token=intent.to_token or INTERMEDIATE_STABLE,
            preferred_chain=intent.to_chain or self.settings.default_chain,
        )
        balances = await self.balance_scanner.scan(user_address)
        opportunities = self.planner.detect_opportunities(balances, target)
        plan = await self.planner.build_plan(opportunities, target, user_address)
        routes = [step.route for step in plan.executable_steps if step.route is not None]

        if not plan.steps and plan.gold_conversion is None:
            content = (
                f"Your balances are already consolidated in {target.preferred_token} "
                f"on {target.preferred_chain}."
            )
        else:
            content = (
                f"Found {len(plan.steps)} balance(s) to consolidate into "
                f"{target.preferred_token} on {target.preferred_chain}; "
                f"{len(plan.executable_steps)} can be executed now. "
                f"Estimated savings: {plan.total_savings}."
            )
            if plan.gold_conversion is not None:
                content += f" Final leg: {plan.gold_conversion.settlement}."
        return AgentResponse(content=content, intent=intent, routes=routes, consolidation=plan)

    def _effective_slippage(
        self, requested: float | None, profile: RecipientProfile | None
    ) -> float:
        if requested is not None:
            return requested
        if profile is not None and profile.slippage_fraction is not None:
            return profile.slippage_fraction
        return DEFAULT_SLIPPAGE

    @staticmethod
    def _resolution_note(name: str, profile: RecipientProfile) -> str:
        note = f"Resolved {name} → {profile.address}"
        summary = profile.preference_summary
        if summary:
            note += f" (prefers {summary})"
        if profile.description:
            note += f"\nProfile: {profile.description}"
        return note

    @staticmethod
    def _ens_profile(profile: RecipientProfile | None) -> EnsProfile | None:
        if profile is None:
            return None
        if not (profile.avatar or profile.description or profile.has_preferences):
            return None
        return EnsProfile(
            avatar=profile.avatar,
            description=profile.description,
            preferences=profile.preference_summary,
        )

    @staticmethod
    def _summary(intent: Intent, recipient: str | None, result: FanOutResult) -> str:
        target = f" to {intent.to_address}" if intent.to_address else ""
        if recipient and recipient != intent.to_address:
            target = f" to {recipient}"

        if intent.action == IntentAction.TRANSFER:
            text = (
                f"I'll transfer {intent.amount} {intent.from_token}{target} on {intent.to_chain}"
                f"{f' as {intent.to_token}' if intent.to_token != intent.from_token else ''}. "
                "Finding the best route..."
            )
        elif intent.action == IntentAction.SWAP:
            text = (
                f"I'll swap {intent.amount} {intent.from_token} to {intent.to_token} "
                f"on {intent.to_chain}. Comparing rates..."
            )
        elif intent.action in (IntentAction.DEPOSIT, IntentAction.YIELD):
            text = (
                f"I'll deposit {intent.amount} {intent.from_token} into a yield vault on Base"
                f"{target}. Finding vault routes..."
            )
        elif intent.action == IntentAction.PAY_VIA_PAYWALL:
            if result.notes:
                return " ".join(result.notes) + " I can handle this payment for you."
            return (
                f"I checked {intent.url} but no x402 paywall was detected. "
                "The resource may be freely accessible."
            )
        else:
            text = "Looking for routes..."

        if result.notes:
            text += "\n\n" + "\n".join(result.notes)
        return text


__all__ = [
    "FanOutResult",
    "RouteAggregator",
    "apply_max_fee",
    "dedupe_routes",
    "max_fee_note",
    "paywall_intent",
]
