"""HTTP 402 paywall detection and the payment route it implies."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from payroute.constants import CHAIN_IDS, get_token_decimals, get_token_symbol, normalize_chain
from payroute.models import IntentAction, QuoteResult, RouteOption, RouteType
from payroute.models.types import from_base_units
from payroute.routing.base import RouteQuery

logger = structlog.get_logger()

PAYWALL_ROUTE_ID = "x402-pay"
PAYWALL_PROVIDER_NAME = "x402"
PAYWALL_ESTIMATED_TIME = "~10s"


@dataclass(frozen=True)
class PaymentDescriptor:
    """What a paywall asks for: amount in token units, on a chain, to an address."""

    amount: str
    token: str
    chain: str
    recipient: str

    @classmethod
    def from_mapping(cls, data: Any) -> "PaymentDescriptor | None":
        """Build from a {amount, token, chain, recipient} object, or None."""
        if not isinstance(data, dict):
            return None
        try:
            return cls(
                amount=str(data["amount"]),
                token=str(data["token"]).upper(),
                chain=normalize_chain(str(data["chain"])) or "",
                recipient=str(data["recipient"]),
            )
        except KeyError:
            return None

    @classmethod
    def from_requirements(cls, data: Any) -> "PaymentDescriptor | None":
        """Build from x402 payment requirements (atomic amount, asset address)."""
        if not isinstance(data, dict):
            return None
        try:
            network = str(data["network"])
            asset = str(data["asset"])
            atomic = int(data["maxAmountRequired"])
            pay_to = str(data["payTo"])
        except (KeyError, ValueError):
            return None

        chain = normalize_chain(network) or network
        symbol = get_token_symbol(asset, chain) if chain in CHAIN_IDS else None
        token = symbol or asset
        amount = from_base_units(atomic, get_token_decimals(symbol or "USDC"))
        return cls(amount=f"{amount.normalize():f}", token=token, chain=chain, recipient=pay_to)


def resolve_url(url: str, base_url: str | None) -> str | None:
    """Absolute URL for a probe target; relative paths need a base."""
    if url.startswith("/"):
        if not base_url:
            return None
        return base_url.rstrip("/") + url
    return url


class PaywallProbe:
    """Detects 402 paywalls by fetching the resource once."""

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def probe(self, url: str, base_url: str | None = None) -> PaymentDescriptor | None:
        """Return the payment the resource demands, or None.

        Any transport or decoding problem counts as "no paywall".
        """
        target = resolve_url(url, base_url)
        if target is None:
            logger.info("paywall_probe_skipped", url=url, reason="relative url without base")
            return None

        try:
            response = await self.http.get(target)
        except httpx.HTTPError as e:
            logger.info("paywall_probe_failed", url=target, error=str(e))
            return None

        if response.status_code != 402:
            return None

        try:
            body = response.json()
        except ValueError:
            body = None

        descriptor = None
        if isinstance(body, dict):
            descriptor = PaymentDescriptor.from_mapping(body.get("payment"))
            if descriptor is None and body.get("accepts"):
                descriptor = PaymentDescriptor.from_requirements(body["accepts"][0])

        header = response.headers.get("X-Payment")
        if descriptor is None and header:
            try:
                descriptor = PaymentDescriptor.from_mapping(json.loads(header))
            except ValueError:
                descriptor = None

        logger.info("paywall_probed", url=target, detected=descriptor is not None)
        return descriptor


def paywall_route(descriptor: PaymentDescriptor) -> RouteOption:
    return RouteOption(
        id=PAYWALL_ROUTE_ID,
        path=f"Pay {descriptor.amount} {descriptor.token} on {descriptor.chain}",
        fee=f"{descriptor.amount} {descriptor.token}",
        estimated_time=PAYWALL_ESTIMATED_TIME,
        provider=PAYWALL_PROVIDER_NAME,
        route_type=RouteType.STANDARD,
    )


class PaywallProvider:
    """Turns a detected paywall into a single payment route."""

    name = "x402"
    precedence = 40

    def __init__(self, probe: PaywallProbe):
        self.probe = probe

    def applies_to(self, query: RouteQuery) -> bool:
        return query.intent.action == IntentAction.PAY_VIA_PAYWALL and bool(query.intent.url)

    async def find_routes(self, query: RouteQuery) -> QuoteResult:
        url = query.intent.url or ""
        descriptor = await self.probe.probe(url, query.base_url)
        if descriptor is None:
            return QuoteResult.empty(f"No paywall detected at {url}")
        note = (
            f"Paywall detected at {url}. Payment required: {descriptor.amount} "
            f"{descriptor.token} on {descriptor.chain} to {descriptor.recipient}."
        )
        return QuoteResult.found([paywall_route(descriptor)], note=note)


__all__ = [
    "PAYWALL_ROUTE_ID",
    "PaymentDescriptor",
    "PaywallProbe",
    "PaywallProvider",
    "paywall_route",
    "resolve_url",
]
