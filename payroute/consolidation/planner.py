"""Balance consolidation planning.

Given a wallet's balances and a target (token, chain), plan the conversions
that move everything into the target asset:

    1. detect_opportunities: every non-zero balance not already in the target
    2. build_plan: pick the cheapest route for each opportunity
    3. apply_plan: simulate the resulting balances

Commodity targets (tokenized gold) route through the intermediate stable on
the target chain first; the final stable -> commodity conversion is priced
from a reference spot price.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from decimal import Decimal

import structlog

from payroute.constants import (
    COMMODITY_TOKENS,
    INTERMEDIATE_STABLE,
    STABLE_TOKENS,
    STANDARD_BRIDGE_FEE_USD,
    STANDARD_SWAP_FEE_USD,
    get_token_address,
    normalize_chain,
)
from payroute.models import (
    Balance,
    ConsolidationOpportunity,
    ConsolidationPlan,
    ConsolidationStep,
    GoldConversion,
    Intent,
    IntentAction,
    RouteOption,
    TargetConfig,
)
from payroute.models.types import format_usd
from payroute.routing.base import parse_duration_seconds
from payroute.routing.cross_chain import lifi_route_id, parse_lifi_route_id
from payroute.routing.hook import HOOK_ROUTE_PREFIX, is_hook_route_id

logger = structlog.get_logger()

# Given a swap intent and the sender, return candidate routes in precedence order
RouteFinder = Callable[[Intent, str], Awaitable[list[RouteOption]]]

UNAVAILABLE_PROVIDER = "unavailable"
UNAVAILABLE_FEE = "—"


def _target_key(target: TargetConfig) -> tuple[str, str]:
    return target.preferred_token.upper(), normalize_chain(target.preferred_chain) or ""


def _format_amount(amount: Decimal) -> str:
    return f"{amount.normalize():f}"


def _usd_estimate(token: str, amount: str, usd_value: str | None) -> Decimal:
    """USD value of a holding; stables count at par when no price is given."""
    if usd_value:
        try:
            return Decimal(usd_value)
        except ArithmeticError:
            pass
    if token.upper() in STABLE_TOKENS:
        try:
            return Decimal(amount)
        except ArithmeticError:
            return Decimal(0)
    return Decimal(0)


def select_route(routes: list[RouteOption]) -> RouteOption | None:
    """Cheapest route; ties go to the faster one, then to precedence order."""
    if not routes:
        return None

    def sort_key(item: tuple[int, RouteOption]) -> tuple[Decimal, float, int]:
        index, route = item
        fee = route.fee_value
        seconds = parse_duration_seconds(route.estimated_time)
        return (
            fee if fee is not None else Decimal("Infinity"),
            seconds if seconds is not None else float("inf"),
            index,
        )

    return min(enumerate(routes), key=sort_key)[1]


def reindex_route(route: RouteOption, index: int) -> RouteOption:
    """Renumber a route id so ids stay unique across consolidation steps."""
    tool = parse_lifi_route_id(route.id)
    if tool is not None:
        return route.model_copy(update={"id": lifi_route_id(index, tool)})
    if is_hook_route_id(route.id):
        return route.model_copy(update={"id": f"{HOOK_ROUTE_PREFIX}{index}"})
    return route


def standard_fee(from_chain: str, to_chain: str) -> Decimal:
    """Fee a user would pay without route optimisation."""
    return STANDARD_SWAP_FEE_USD if from_chain == to_chain else STANDARD_BRIDGE_FEE_USD


class ConsolidationPlanner:
    """Plans conversions of scattered balances into one target asset."""

    def __init__(self, route_finder: RouteFinder, gold_spot_price_usd: Decimal):
        """Initialize the planner.

        Args:
            route_finder: Async callable returning routes for a swap intent
            gold_spot_price_usd: Reference USD price per commodity token
        """
        self.route_finder = route_finder
        self.gold_spot_price_usd = gold_spot_price_usd

    def detect_opportunities(
        self, balances: list[Balance], target: TargetConfig
    ) -> list[ConsolidationOpportunity]:
        """One opportunity per non-zero balance outside the target asset."""
        target_token, target_chain = _target_key(target)
        opportunities: list[ConsolidationOpportunity] = []

        for balance in balances:
            if balance.amount_decimal <= 0:
                continue
            token = balance.token.upper()
            chain = normalize_chain(balance.chain) or ""
            if (token, chain) == (target_token, target_chain):
                continue
            executable = (
                get_token_address(token, chain) is not None
                and get_token_address(target_token, target_chain) is not None
            )
            opportunities.append(
                ConsolidationOpportunity(
                    from_token=token,
                    from_chain=chain,
                    amount=balance.amount,
                    to_token=target_token,
                    to_chain=target_chain,
                    usd_value=balance.usd_value,
                    executable=executable,
                )
            )
        return opportunities

    async def build_plan(
        self,
        opportunities: list[ConsolidationOpportunity],
        target: TargetConfig,
        from_address: str,
    ) -> ConsolidationPlan:
        """Select a route per opportunity and total the savings."""
        target_token, target_chain = _target_key(target)
        is_commodity = target_token in COMMODITY_TOKENS
        step_token = INTERMEDIATE_STABLE if is_commodity else target_token

        steps: list[ConsolidationStep] = []
        savings = Decimal(0)
        stable_for_commodity = Decimal(0)

        for opp in opportunities:
            if is_commodity and (opp.from_token, opp.from_chain) == (step_token, target_chain):
                # Already in the intermediate stable; only the commodity leg applies
                stable_for_commodity += _usd_estimate(opp.from_token, opp.amount, opp.usd_value)
                continue

            step = await self._plan_step(opp, step_token, target_chain, from_address, len(steps))
            steps.append(step)
            if not step.executable:
                continue

            if is_commodity:
                stable_for_commodity += _usd_estimate(opp.from_token, opp.amount, opp.usd_value)
            fee = step.route.fee_value if step.route else None
            if fee is not None:
                savings += max(Decimal(0), standard_fee(step.from_chain, step.to_chain) - fee)

        gold = None
        if is_commodity and stable_for_commodity > 0:
            gold = self._gold_conversion(target_token, target_chain, stable_for_commodity)

        plan = ConsolidationPlan(
            steps=steps, total_savings=format_usd(savings), gold_conversion=gold
        )
        logger.info(
            "consolidation_planned",
            steps=len(steps),
            executable=len(plan.executable_steps),
            total_savings=plan.total_savings,
            commodity=is_commodity,
        )
        return plan

    async def _plan_step(
        self,
        opp: ConsolidationOpportunity,
        to_token: str,
        to_chain: str,
        from_address: str,
        index: int,
    ) -> ConsolidationStep:
        intent = Intent(
            action=IntentAction.SWAP,
            amount=opp.amount,
            from_token=opp.from_token,
            to_token=to_token,
            from_chain=opp.from_chain,
            to_chain=to_chain,
            to_address=from_address,
        )
        description = (
            f"Convert {opp.amount} {opp.from_token} on {opp.from_chain} "
            f"to {to_token} on {to_chain}"
        )

        route = None
        if opp.executable:
            try:
                route = select_route(await self.route_finder(intent, from_address))
            except Exception as e:
                logger.warning(
                    "consolidation_route_failed",
                    from_token=opp.from_token,
                    from_chain=opp.from_chain,
                    error=str(e),
                )

        if route is None:
            return ConsolidationStep(
                from_token=opp.from_token,
                from_chain=opp.from_chain,
                to_token=to_token,
                to_chain=to_chain,
                amount=opp.amount,
                provider=UNAVAILABLE_PROVIDER,
                fee=UNAVAILABLE_FEE,
                estimated_time="—",
                executable=False,
                description=f"{description} (no route available)",
                intent=intent,
            )

        route = reindex_route(route, index)
        return ConsolidationStep(
            from_token=opp.from_token,
            from_chain=opp.from_chain,
            to_token=to_token,
            to_chain=to_chain,
            amount=opp.amount,
            provider=route.provider,
            fee=route.fee,
            estimated_time=route.estimated_time,
            executable=True,
            description=description,
            route_id=route.id,
            intent=intent,
            route=route,
        )

    def _gold_conversion(self, token: str, chain: str, stable_amount: Decimal) -> GoldConversion:
        spot = self.gold_spot_price_usd
        estimated = (stable_amount / spot).quantize(Decimal("0.000001")) if spot > 0 else Decimal(0)
        return GoldConversion(
            from_token=INTERMEDIATE_STABLE,
            to_token=token,
            chain=chain,
            stable_amount=_format_amount(stable_amount),
            spot_price=format_usd(spot),
            estimated_amount=_format_amount(estimated),
            settlement=(
                f"Swap {_format_amount(stable_amount)} {INTERMEDIATE_STABLE} for ~"
                f"{_format_amount(estimated)} {token} on {chain} at {format_usd(spot)} per token"
            ),
        )

    def apply_plan(self, balances: list[Balance], plan: ConsolidationPlan) -> list[Balance]:
        """Balances after every executable step (and the commodity leg) settles.

        Amounts received are estimates: stable-to-stable and same-token moves
        carry over one to one, other conversions carry their USD value into a
        stable target. Non-executable steps leave their balance untouched.
        """
        remaining: dict[tuple[str, str], Decimal] = {}
        usd: dict[tuple[str, str], str | None] = {}
        for balance in balances:
            key = (balance.token.upper(), normalize_chain(balance.chain) or "")
            remaining[key] = remaining.get(key, Decimal(0)) + balance.amount_decimal
            usd[key] = balance.usd_value

        for step in plan.executable_steps:
            source = (step.from_token, step.from_chain)
            dest = (step.to_token, step.to_chain)
            moved = min(remaining.get(source, Decimal(0)), Decimal(step.amount))
            remaining[source] = remaining.get(source, Decimal(0)) - moved
            if step.from_token == step.to_token or (
                step.from_token in STABLE_TOKENS and step.to_token in STABLE_TOKENS
            ):
                received = moved
            elif step.to_token in STABLE_TOKENS:
                received = _usd_estimate(step.from_token, str(moved), usd.get(source))
            else:
                received = Decimal(0)
            remaining[dest] = remaining.get(dest, Decimal(0)) + received

        gold = plan.gold_conversion
        if gold is not None:
            stable_key = (gold.from_token, gold.chain)
            remaining[stable_key] = Decimal(0)
            gold_key = (gold.to_token, gold.chain)
            remaining[gold_key] = remaining.get(gold_key, Decimal(0)) + Decimal(
                gold.estimated_amount
            )

        return [
            Balance(token=token, chain=chain, amount=_format_amount(amount))
            for (token, chain), amount in remaining.items()
            if amount > 0
        ]


__all__ = [
    "ConsolidationPlanner",
    "RouteFinder",
    "reindex_route",
    "select_route",
    "standard_fee",
]
