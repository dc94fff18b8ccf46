"""Vault-composition routes: bridge to Base USDC, then deposit into a vault.

LI.FI contract-call quotes deliver USDC to the YieldRouter on Base and call
depositToYield(recipient, vault, token, amount) in the same transaction. A
recipient with declared allocations also gets a split route: one quote whose
contract calls deposit each share into its own vault.

Intent amounts are in source-token units. For sources other than USDC the
deposit size is the minimum USDC a plain LI.FI quote would deliver to Base.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import Any

import structlog

from payroute.chain.encoding import encode_deposit_to_yield
from payroute.constants import (
    VAULT_ASSET,
    VAULT_CALL_GAS_LIMIT,
    VAULT_CHAIN,
    VAULT_PROTOCOLS,
    ZERO_ADDRESS,
    get_chain_id,
    get_token_address,
    get_token_decimals,
)
from payroute.errors import UpstreamError
from payroute.models import IntentAction, QuoteResult, RouteOption, RouteType
from payroute.models.types import format_usd, is_valid_address, to_base_units
from payroute.routing.base import RouteQuery, sum_usd
from payroute.routing.cache import RouteCache
from payroute.routing.lifi import LifiClient, parse_quantity

logger = structlog.get_logger()

VAULT_ROUTE_PREFIX = "vault"
VAULT_PROVIDER_NAME = "LI.FI + YieldRouter"
SPLIT_PROVIDER_NAME = "LI.FI + MultiVault"
RECIPIENT_VAULT_KEY = "recipient"
SPLIT_VAULT_KEY = "split"
NO_VAULT_MESSAGE = "No vault configured for recipient"


@dataclass(frozen=True)
class VaultTarget:
    """A vault a deposit can land in."""

    key: str
    label: str
    address: str


@dataclass(frozen=True)
class VaultShare:
    """One leg of a split deposit."""

    target: VaultTarget
    percentage: int


def vault_route_id(protocol: str, index: int = 0) -> str:
    return f"{VAULT_ROUTE_PREFIX}-{protocol}-{index}"


def parse_vault_route_id(route_id: str) -> str | None:
    """Return the protocol key encoded in a vault-<protocol>-<n> id, or None."""
    parts = route_id.split("-")
    if len(parts) < 3 or parts[0] != VAULT_ROUTE_PREFIX or not parts[-1].isdigit():
        return None
    return "-".join(parts[1:-1]) or None


def split_amount(total: int, percentages: list[int]) -> list[int]:
    """Divide base units by percent; the last share absorbs rounding dust."""
    amounts = [total * percentage // 100 for percentage in percentages]
    amounts[-1] += total - sum(amounts)
    return amounts


def _usable_vault(address: str | None) -> bool:
    return bool(address) and is_valid_address(address) and address.lower() != ZERO_ADDRESS


class VaultCompositionProvider:
    """Quotes deposits into the configured vaults and the recipient's own."""

    name = "vault"
    precedence = 30

    def __init__(
        self,
        lifi: LifiClient,
        cache: RouteCache,
        yield_router: str,
        protocols: dict[str, tuple[str, str]] | None = None,
    ):
        self.lifi = lifi
        self.cache = cache
        self.yield_router = yield_router
        self.protocols = protocols if protocols is not None else VAULT_PROTOCOLS

    def applies_to(self, query: RouteQuery) -> bool:
        intent = query.intent
        return intent.action in (IntentAction.DEPOSIT, IntentAction.YIELD) and bool(
            intent.amount and intent.from_token
        )

    def targets_for(self, query: RouteQuery) -> list[VaultTarget]:
        """Vaults to quote: the pinned protocol, or every known one."""
        recipient_vault = query.profile.vault if query.profile else None
        pinned = query.intent.vault_protocol

        targets: list[VaultTarget] = []
        if pinned and pinned != RECIPIENT_VAULT_KEY:
            if pinned in self.protocols:
                label, address = self.protocols[pinned]
                targets.append(VaultTarget(pinned, label, address))
            return [t for t in targets if _usable_vault(t.address)]

        if not pinned:
            for key, (label, address) in self.protocols.items():
                targets.append(VaultTarget(key, label, address))
        if _usable_vault(recipient_vault):
            targets.append(VaultTarget(RECIPIENT_VAULT_KEY, "Recipient", recipient_vault or ""))
        return [t for t in targets if _usable_vault(t.address)]

    def target_by_key(self, key: str, query: RouteQuery) -> VaultTarget | None:
        for target in self.targets_for(query):
            if target.key == key:
                return target
        if key in self.protocols:
            label, address = self.protocols[key]
            return VaultTarget(key, label, address)
        return None

    def shares_for(self, query: RouteQuery) -> list[VaultShare] | None:
        """The recipient's split across vaults, or None when there is none.

        A split needs at least two non-zero shares, each naming a known
        protocol or "recipient" (the recipient's own vault).
        """
        if query.profile is None or query.intent.vault_protocol:
            return None
        allocations = query.profile.vault_allocations
        if not allocations:
            return None

        shares: list[VaultShare] = []
        for key, percentage in allocations:
            if percentage == 0:
                continue
            if key == RECIPIENT_VAULT_KEY:
                target = VaultTarget(key, "Recipient", query.profile.vault or "")
            elif key in self.protocols:
                label, address = self.protocols[key]
                target = VaultTarget(key, label, address)
            else:
                return None
            if not _usable_vault(target.address):
                return None
            shares.append(VaultShare(target, percentage))
        return shares if len(shares) > 1 else None

    async def deposit_amount(self, query: RouteQuery) -> int:
        """Vault-asset base units the intent's source amount will deposit.

        Raises:
            UpstreamError: If tokens are unsupported or the conversion quote fails
        """
        intent = query.intent
        from_token = (intent.from_token or "").upper()
        if from_token == VAULT_ASSET:
            return to_base_units(intent.amount or "0", get_token_decimals(VAULT_ASSET))

        from_chain_id = get_chain_id(query.from_chain)
        from_address = get_token_address(from_token, query.from_chain)
        if from_chain_id is None or from_address is None:
            raise UpstreamError(f"Source token not supported: {from_token} on {query.from_chain}")

        params = {
            "fromChain": from_chain_id,
            "toChain": get_chain_id(VAULT_CHAIN),
            "fromToken": from_address,
            "toToken": get_token_address(VAULT_ASSET, VAULT_CHAIN),
            "fromAmount": str(to_base_units(intent.amount or "0", get_token_decimals(from_token))),
            "fromAddress": query.from_address or ZERO_ADDRESS,
            "toAddress": self.yield_router,
            "slippage": query.slippage,
        }
        quote = await self.lifi.quote(params)
        estimate = quote.get("estimate") or {}
        try:
            amount = parse_quantity(estimate.get("toAmountMin") or estimate.get("toAmount"))
        except ValueError as e:
            raise UpstreamError(f"Invalid {VAULT_ASSET} estimate for {from_token}") from e
        if amount <= 0:
            raise UpstreamError(f"No {VAULT_ASSET} estimate for {intent.amount} {from_token}")
        logger.debug("vault_deposit_sized", from_token=from_token, deposit_amount=amount)
        return amount

    async def _contract_calls_quote(
        self, query: RouteQuery, legs: list[tuple[str, int]]
    ) -> dict[str, Any]:
        """One contract-call quote depositing each (vault, amount) leg."""
        intent = query.intent
        from_token = intent.from_token or ""
        from_chain_id = get_chain_id(query.from_chain)
        to_chain_id = get_chain_id(VAULT_CHAIN)
        from_address = get_token_address(from_token, query.from_chain)
        asset_address = get_token_address(VAULT_ASSET, VAULT_CHAIN)
        if from_chain_id is None or from_address is None:
            raise UpstreamError(f"Source token not supported: {from_token} on {query.from_chain}")
        if to_chain_id is None or asset_address is None:
            raise UpstreamError(f"{VAULT_ASSET} not supported on {VAULT_CHAIN}")

        sender = query.from_address or ZERO_ADDRESS
        beneficiary = query.recipient or sender
        contract_calls = [
            {
                "fromAmount": str(amount),
                "fromTokenAddress": asset_address,
                "toContractAddress": self.yield_router,
                "toContractCallData": encode_deposit_to_yield(
                    beneficiary, vault, asset_address, amount
                ),
                "toContractGasLimit": VAULT_CALL_GAS_LIMIT,
            }
            for vault, amount in legs
        ]
        body = {
            "fromChain": from_chain_id,
            "fromToken": from_address,
            "fromAddress": sender,
            "toChain": to_chain_id,
            "toToken": asset_address,
            "toAmount": str(sum(amount for _, amount in legs)),
            "contractCalls": contract_calls,
            "slippage": query.slippage,
        }
        return await self.lifi.contract_calls_quote(body)

    async def fetch_quote(self, query: RouteQuery, target: VaultTarget) -> dict[str, Any]:
        """Request a fresh contract-call quote for one vault (uncached).

        Raises:
            UpstreamError: If tokens are unsupported or LI.FI fails
        """
        amount = await self.deposit_amount(query)
        return await self._contract_calls_quote(query, [(target.address, amount)])

    async def fetch_split_quote(
        self, query: RouteQuery, shares: list[VaultShare]
    ) -> dict[str, Any]:
        """Request a fresh quote depositing into every share's vault at once.

        Raises:
            UpstreamError: If tokens are unsupported or LI.FI fails
        """
        total = await self.deposit_amount(query)
        amounts = split_amount(total, [share.percentage for share in shares])
        legs = [(share.target.address, amount) for share, amount in zip(shares, amounts)]
        return await self._contract_calls_quote(query, legs)

    def _cache_key(self, query: RouteQuery, vault: str) -> str:
        return RouteCache.make_key(
            provider=self.name,
            from_chain=query.from_chain,
            from_token=query.intent.from_token,
            recipient=(query.recipient or "").lower(),
            vault=vault,
            amount=query.intent.amount,
            slippage=query.slippage,
        )

    async def _quote_target(self, query: RouteQuery, target: VaultTarget) -> QuoteResult:
        key = self._cache_key(query, target.address.lower())
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            quote = await self.fetch_quote(query, target)
        except UpstreamError as e:
            logger.info("vault_quote_failed", vault=target.key, error=str(e))
            return QuoteResult.empty(f"{target.label} vault: {e}")

        result = QuoteResult.found([self._to_option(quote, target)])
        self.cache.put(key, result)
        return result

    async def _quote_split(self, query: RouteQuery, shares: list[VaultShare]) -> QuoteResult:
        key = self._cache_key(
            query,
            ",".join(f"{s.target.address.lower()}:{s.percentage}" for s in shares),
        )
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            quote = await self.fetch_split_quote(query, shares)
        except UpstreamError as e:
            logger.info("split_vault_quote_failed", error=str(e))
            return QuoteResult.empty(f"Split deposit: {e}")

        result = QuoteResult.found([self._to_split_option(quote, shares)])
        self.cache.put(key, result)
        return result

    async def find_routes(self, query: RouteQuery) -> QuoteResult:
        targets = self.targets_for(query)
        shares = self.shares_for(query)
        if not targets and not shares:
            return QuoteResult.empty(NO_VAULT_MESSAGE)

        pending = [self._quote_target(query, t) for t in targets]
        if shares:
            pending.append(self._quote_split(query, shares))
        results = await asyncio.gather(*pending)
        routes = [route for result in results for route in result.routes]
        if routes:
            return QuoteResult.found(routes)
        errors = [result.error for result in results if result.error]
        return QuoteResult.empty("; ".join(errors) if errors else NO_VAULT_MESSAGE)

    def _bridge_path(self, quote: dict[str, Any]) -> str:
        steps = quote.get("includedSteps") or []
        tools = [
            str((step.get("toolDetails") or {}).get("name") or step.get("type") or "step")
            for step in steps
        ]
        return " -> ".join(tools) if tools else f"-> {VAULT_ASSET}"

    def _option(
        self, quote: dict[str, Any], route_id: str, path: str, provider: str
    ) -> RouteOption:
        estimate = quote.get("estimate") or {}
        duration = estimate.get("executionDuration")
        estimated_time = f"{math.ceil(float(duration) / 60)} min" if duration else "~3 min"

        return RouteOption(
            id=route_id,
            path=path,
            fee=format_usd(sum_usd(estimate.get("gasCosts"))),
            estimated_time=estimated_time,
            provider=provider,
            route_type=RouteType.CONTRACT_CALL,
        )

    def _to_option(self, quote: dict[str, Any], target: VaultTarget) -> RouteOption:
        return self._option(
            quote,
            vault_route_id(target.key),
            f"YieldRoute: {self._bridge_path(quote)} -> {target.label} Vault",
            VAULT_PROVIDER_NAME,
        )

    def _to_split_option(self, quote: dict[str, Any], shares: list[VaultShare]) -> RouteOption:
        split = " + ".join(f"{s.percentage}% {s.target.label}" for s in shares)
        return self._option(
            quote,
            vault_route_id(SPLIT_VAULT_KEY),
            f"MultiVault: {self._bridge_path(quote)} -> {split}",
            SPLIT_PROVIDER_NAME,
        )


__all__ = [
    "NO_VAULT_MESSAGE",
    "SPLIT_PROVIDER_NAME",
    "SPLIT_VAULT_KEY",
    "VaultCompositionProvider",
    "VaultShare",
    "VaultTarget",
    "parse_vault_route_id",
    "split_amount",
    "vault_route_id",
]
