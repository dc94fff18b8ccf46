"""Builds unsigned transactions for a selected route.

Execution is stepwise: when the sender still has to approve the source
token, the builder returns the approval transaction (provider prefixed with
"Approval: ") and the client calls again once it is mined. The same request
then yields the route's main transaction.

Quotes are never reused from discovery; every build re-quotes so the
calldata reflects current prices.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog

from payroute.chain.encoding import encode_approve, encode_hook_swap, encode_transfer
from payroute.chain.rpc import ChainRpcClient
from payroute.config import Settings
from payroute.constants import (
    DEFAULT_SLIPPAGE,
    SET_PREFERENCE_ROUTE_ID,
    ZERO_ADDRESS,
    get_chain_id,
    get_token_address,
    get_token_decimals,
    is_native_token,
)
from payroute.errors import ClientInputError, ResolutionError, UpstreamError
from payroute.identity.preferences import build_set_preference_transaction, lookup_resolver
from payroute.identity.registry import IdentityRegistry
from payroute.identity.resolver import PreferenceResolver, requires_resolution
from payroute.models import Intent, IntentAction, RecipientProfile, UnsignedTransaction
from payroute.models.api import APPROVAL_PREFIX
from payroute.models.types import from_base_units, is_valid_address, to_base_units
from payroute.routing.base import RouteQuery
from payroute.routing.cross_chain import parse_lifi_route_id
from payroute.routing.hook import HOOK_PROVIDER_NAME, hook_fee, is_hook_route_id
from payroute.routing.lifi import LifiClient, parse_quantity
from payroute.routing.paywall import PAYWALL_ROUTE_ID, PaywallProbe
from payroute.routing.vault import (
    SPLIT_PROVIDER_NAME,
    SPLIT_VAULT_KEY,
    VAULT_PROVIDER_NAME,
    VaultCompositionProvider,
    parse_vault_route_id,
)

logger = structlog.get_logger()

DEFAULT_PREFERENCE_TOKEN = "USDC"
DEFAULT_PREFERENCE_CHAIN = "base"


def validate_request(
    intent: Intent | None, from_address: str | None, route_id: str | None
) -> Intent:
    """Check the request shape before any network call.

    Raises:
        ClientInputError: If anything needed to build the transaction is missing
    """
    if not from_address or not is_valid_address(from_address):
        raise ClientInputError("Missing or invalid fromAddress")
    if not route_id:
        raise ClientInputError("Missing routeId")
    if intent is None:
        raise ClientInputError("Missing intent")
    if not intent.from_token or not intent.amount:
        raise ClientInputError("Incomplete intent: fromToken and amount required")
    if intent.action != IntentAction.PAY_VIA_PAYWALL and not intent.to_token:
        raise ClientInputError("Incomplete intent: fromToken, toToken, and amount required")
    return intent


class ExecutionBuilder:
    """Turns (intent, route id, sender) into the next transaction to sign."""

    def __init__(
        self,
        settings: Settings,
        lifi: LifiClient,
        rpc: ChainRpcClient,
        resolver: PreferenceResolver,
        registry: IdentityRegistry,
        vault_provider: VaultCompositionProvider,
        paywall_probe: PaywallProbe,
    ):
        self.settings = settings
        self.lifi = lifi
        self.rpc = rpc
        self.resolver = resolver
        self.registry = registry
        self.vault_provider = vault_provider
        self.paywall_probe = paywall_probe

    async def build(
        self,
        intent: Intent | None,
        from_address: str | None,
        route_id: str | None,
        slippage: float | None = None,
        *,
        ens_name: str | None = None,
        base_url: str | None = None,
    ) -> UnsignedTransaction:
        """Build the next unsigned transaction for a route.

        Raises:
            ClientInputError: Bad request fields or unknown route id (400)
            UpstreamError: Quote, probe or chain read failed (500)
        """
        if route_id == SET_PREFERENCE_ROUTE_ID:
            if not from_address or not is_valid_address(from_address):
                raise ClientInputError("Missing or invalid fromAddress")
            return await self._set_preference(intent, ens_name)

        intent = validate_request(intent, from_address, route_id)
        sender = from_address or ""
        route_id = route_id or ""
        slippage = DEFAULT_SLIPPAGE if slippage is None else slippage
        log = logger.bind(route_id=route_id, action=intent.action.value)

        from_chain = intent.from_chain or self.settings.default_chain
        to_chain = intent.to_chain or from_chain
        intent = intent.model_copy(update={"from_chain": from_chain, "to_chain": to_chain})

        if route_id == PAYWALL_ROUTE_ID:
            tx = await self._paywall(intent, base_url)
        else:
            if get_token_address(intent.from_token or "", from_chain) is None:
                raise ClientInputError(
                    f"Source token not supported: {intent.from_token} on {from_chain}"
                )
            tool = parse_lifi_route_id(route_id)
            vault_key = parse_vault_route_id(route_id)
            if tool is None and vault_key is None and not is_hook_route_id(route_id):
                raise ClientInputError(f"Unknown route id: {route_id}")

            recipient, profile = await self._recipient(intent, sender)
            if tool is not None:
                tx, spender, pulled = await self._lifi(intent, sender, recipient, tool, slippage)
            elif is_hook_route_id(route_id):
                tx, spender, pulled = self._hook(intent, recipient, slippage)
            else:
                tx, spender, pulled = await self._vault(
                    intent, sender, recipient, profile, vault_key or "", slippage
                )

            approval = await self._approval_if_needed(
                intent, sender, spender, pulled, tx.provider or ""
            )
            if approval is not None:
                log.info("approval_required", spender=spender)
                return approval

        log.info("transaction_built", to=tx.to, chain_id=tx.chain_id)
        return tx

    async def _recipient(
        self, intent: Intent, sender: str
    ) -> tuple[str, RecipientProfile | None]:
        """Resolve the intent's recipient; swaps without one pay the sender."""
        target = intent.to_address
        if not target:
            return sender, None
        if requires_resolution(target):
            profile = await self.resolver.resolve(target)
            if not profile.is_resolved or not profile.address:
                raise ResolutionError(f'Could not resolve "{target}"')
            return profile.address, profile
        if not is_valid_address(target):
            raise ClientInputError(f"Invalid recipient address: {target}")
        return target, None

    async def _set_preference(
        self, intent: Intent | None, ens_name: str | None
    ) -> UnsignedTransaction:
        name = ens_name or (intent.to_address if intent else None)
        if not name or not requires_resolution(name):
            raise ClientInputError("ensName is required to set payment preferences")
        token = (intent.to_token if intent else None) or DEFAULT_PREFERENCE_TOKEN
        chain = (intent.to_chain if intent else None) or DEFAULT_PREFERENCE_CHAIN

        resolver_address = await lookup_resolver(self.registry, name)
        return build_set_preference_transaction(name, token, chain, resolver_address)

    async def _lifi(
        self, intent: Intent, sender: str, recipient: str, tool: str, slippage: float
    ) -> tuple[UnsignedTransaction, str | None, int | None]:
        from_chain = intent.from_chain or ""
        to_chain = intent.to_chain or ""
        to_token_address = get_token_address(intent.to_token or "", to_chain)
        if to_token_address is None:
            raise ClientInputError(
                f"Destination token not supported: {intent.to_token} on {to_chain}"
            )

        amount = to_base_units(intent.amount or "0", get_token_decimals(intent.from_token or ""))
        params: dict[str, Any] = {
            "fromChain": get_chain_id(from_chain),
            "toChain": get_chain_id(to_chain),
            "fromToken": get_token_address(intent.from_token or "", from_chain),
            "toToken": to_token_address,
            "fromAmount": str(amount),
            "fromAddress": sender,
            "toAddress": recipient,
            "slippage": slippage,
        }
        # A route's tool is a bridge when chains differ, an exchange otherwise
        if from_chain != to_chain:
            params["allowBridges"] = tool
        else:
            params["allowExchanges"] = tool

        quote = await self.lifi.quote(params)
        tool_name = (quote.get("toolDetails") or {}).get("name") or tool
        return self._from_transaction_request(quote, f"LI.FI ({tool_name})", intent)

    def _hook(
        self, intent: Intent, recipient: str, slippage: float
    ) -> tuple[UnsignedTransaction, str | None, int | None]:
        chain = intent.from_chain or ""
        if chain != intent.to_chain:
            raise ClientInputError("Hook routes only settle on a single chain")
        router = self.settings.hook_routers.get(chain)
        if router is None:
            raise ClientInputError(f"No stable hook router deployed on {chain}")

        from_token = intent.from_token or ""
        to_token = intent.to_token or ""
        token_in = get_token_address(from_token, chain)
        token_out = get_token_address(to_token, chain)
        if token_in is None or token_out is None:
            raise ClientInputError(f"Unsupported hook pair {from_token}/{to_token} on {chain}")

        amount = Decimal(intent.amount or "0")
        expected_out = amount - hook_fee(amount)
        min_out = expected_out * (Decimal(1) - Decimal(str(slippage)))
        data = encode_hook_swap(
            token_in,
            token_out,
            to_base_units(str(amount), get_token_decimals(from_token)),
            to_base_units(str(min_out), get_token_decimals(to_token)),
            recipient,
        )
        tx = UnsignedTransaction(
            to=router,
            data=data,
            value="0",
            chain_id=get_chain_id(chain) or 0,
            provider=HOOK_PROVIDER_NAME,
            description=f"Swap {intent.amount} {from_token} for {to_token} on {chain}",
        )
        return tx, router, None

    async def _vault(
        self,
        intent: Intent,
        sender: str,
        recipient: str,
        profile: RecipientProfile | None,
        vault_key: str,
        slippage: float,
    ) -> tuple[UnsignedTransaction, str | None, int | None]:
        query = RouteQuery(
            intent=intent,
            recipient=recipient,
            from_address=sender,
            slippage=slippage,
            profile=profile,
        )
        if vault_key == SPLIT_VAULT_KEY:
            shares = self.vault_provider.shares_for(query)
            if not shares:
                raise ClientInputError("Recipient has no vault allocations")
            quote = await self.vault_provider.fetch_split_quote(query, shares)
            return self._from_transaction_request(quote, SPLIT_PROVIDER_NAME, intent)

        target = self.vault_provider.target_by_key(vault_key, query)
        if target is None:
            raise ClientInputError(f"Unknown vault: {vault_key}")
        quote = await self.vault_provider.fetch_quote(query, target)
        return self._from_transaction_request(quote, VAULT_PROVIDER_NAME, intent)

    async def _paywall(self, intent: Intent, base_url: str | None) -> UnsignedTransaction:
        if not intent.url:
            raise ClientInputError("Paywall payments need the resource url")
        descriptor = await self.paywall_probe.probe(intent.url, base_url)
        if descriptor is None:
            raise UpstreamError(f"No paywall detected at {intent.url}")

        chain_id = get_chain_id(descriptor.chain)
        token_address = get_token_address(descriptor.token, descriptor.chain)
        if chain_id is None or token_address is None:
            raise UpstreamError(
                f"Unsupported paywall payment: {descriptor.token} on {descriptor.chain}"
            )
        if not is_valid_address(descriptor.recipient):
            raise UpstreamError(f"Invalid paywall recipient: {descriptor.recipient}")

        amount = to_base_units(descriptor.amount, get_token_decimals(descriptor.token))
        description = f"Pay {descriptor.amount} {descriptor.token} for {intent.url}"
        if is_native_token(token_address):
            return UnsignedTransaction(
                to=descriptor.recipient,
                data="0x",
                value=str(amount),
                chain_id=chain_id,
                provider="x402",
                description=description,
            )
        return UnsignedTransaction(
            to=token_address,
            data=encode_transfer(descriptor.recipient, amount),
            value="0",
            chain_id=chain_id,
            provider="x402",
            description=description,
        )

    def _from_transaction_request(
        self, quote: dict[str, Any], provider: str, intent: Intent
    ) -> tuple[UnsignedTransaction, str | None, int | None]:
        request = quote.get("transactionRequest")
        if not request or not request.get("to") or not request.get("data"):
            raise UpstreamError("No quote available for the selected route")

        chain_id = request.get("chainId") or get_chain_id(intent.from_chain or "")
        tx = UnsignedTransaction(
            to=request["to"],
            data=request["data"],
            value=str(parse_quantity(request.get("value"))),
            chain_id=int(chain_id or 0),
            provider=provider,
            description=(
                f"Send {intent.amount} {intent.from_token} on {intent.from_chain} "
                f"-> {intent.to_token} on {intent.to_chain}"
            ),
        )
        spender = (quote.get("estimate") or {}).get("approvalAddress") or request["to"]
        # Contract-call quotes sized by toAmount pull more than the intent amount
        pulled = (quote.get("action") or {}).get("fromAmount")
        return tx, spender, parse_quantity(pulled) if pulled else None

    async def _approval_if_needed(
        self,
        intent: Intent,
        owner: str,
        spender: str | None,
        pulled: int | None,
        label: str,
    ) -> UnsignedTransaction | None:
        """Approval transaction when the allowance is short, else None.

        The required allowance is what the quote pulls from the sender when
        it says so, otherwise the intent amount.
        """
        chain = intent.from_chain or ""
        token_symbol = intent.from_token or ""
        token = get_token_address(token_symbol, chain)
        if spender is None or token is None or is_native_token(token):
            return None
        if spender.lower() == ZERO_ADDRESS:
            return None

        decimals = get_token_decimals(token_symbol)
        amount = pulled if pulled is not None else to_base_units(intent.amount or "0", decimals)
        try:
            allowance = await self.rpc.get_allowance(chain, token, owner, spender)
        except UpstreamError as e:
            raise UpstreamError(f"Could not read {token_symbol} allowance on {chain}: {e}") from e
        if allowance >= amount:
            return None

        return UnsignedTransaction(
            to=token,
            data=encode_approve(spender, amount),
            value="0",
            chain_id=get_chain_id(chain) or 0,
            provider=f"{APPROVAL_PREFIX}{token_symbol} for {label}",
            description=f"Approve {from_base_units(amount, decimals)} {token_symbol} on {chain}",
        )


__all__ = ["ExecutionBuilder", "validate_request"]
