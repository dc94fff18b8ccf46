"""Application wiring and FastAPI dependency providers.

Everything with shared state (HTTP client, route cache, rate-limit windows,
stores) lives on one AppContainer built at startup. Endpoints receive it via
Depends(get_container); tests override that dependency:

    app.dependency_overrides[get_container] = lambda: test_container
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request

from payroute.chain.balances import BalanceScanner, RpcBalanceScanner
from payroute.chain.rpc import ChainRpcClient
from payroute.config import Settings
from payroute.execution.builder import ExecutionBuilder
from payroute.identity.receipts import ReceiptLog
from payroute.identity.registry import IdentityRegistry, Web3IdentityRegistry
from payroute.identity.resolver import PreferenceResolver
from payroute.invoices import InvoiceStore
from payroute.parser import IntentParser, RuleBasedIntentParser
from payroute.ratelimit import FixedWindowRateLimiter
from payroute.routing.aggregator import RouteAggregator
from payroute.routing.cache import RouteCache
from payroute.routing.cross_chain import CrossChainProvider
from payroute.routing.hook import SameChainHookProvider
from payroute.routing.lifi import LifiClient
from payroute.routing.paywall import PaywallProbe, PaywallProvider
from payroute.routing.registry import build_default_registry
from payroute.routing.vault import VaultCompositionProvider


@dataclass
class AppContainer:
    """Long-lived collaborators shared by all requests."""

    settings: Settings
    http: httpx.AsyncClient
    cache: RouteCache
    rate_limiter: FixedWindowRateLimiter
    parser: IntentParser
    aggregator: RouteAggregator
    builder: ExecutionBuilder
    receipts: ReceiptLog
    invoices: InvoiceStore
    identity: IdentityRegistry

    async def aclose(self) -> None:
        await self.http.aclose()


def build_container(
    settings: Settings | None = None,
    *,
    http: httpx.AsyncClient | None = None,
    identity_registry: IdentityRegistry | None = None,
    balance_scanner: BalanceScanner | None = None,
    parser: IntentParser | None = None,
) -> AppContainer:
    """Wire the production object graph.

    Args:
        settings: Configuration (defaults to Settings.from_env())
        http: Shared HTTP client; tests pass one with an httpx.MockTransport
        identity_registry: Name registry (defaults to ENS via web3)
        balance_scanner: Balance source for consolidation (defaults to RPC)
        parser: Intent parser (defaults to the rule-based parser)
    """
    settings = settings or Settings.from_env()
    http = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    identity_registry = identity_registry or Web3IdentityRegistry(settings.eth_rpc_url)

    cache = RouteCache(ttl_seconds=settings.route_cache_ttl_seconds)
    lifi = LifiClient(http, settings)
    rpc = ChainRpcClient(http, settings.rpc_urls)
    resolver = PreferenceResolver(identity_registry)
    probe = PaywallProbe(http)
    vault = VaultCompositionProvider(lifi, cache, settings.yield_router_address)

    providers = build_default_registry(
        hook=SameChainHookProvider(settings.hook_routers),
        cross_chain=CrossChainProvider(lifi, cache),
        vault=vault,
        paywall=PaywallProvider(probe),
    )
    aggregator = RouteAggregator(
        resolver,
        providers,
        settings,
        balance_scanner=balance_scanner or RpcBalanceScanner(rpc),
    )
    builder = ExecutionBuilder(
        settings=settings,
        lifi=lifi,
        rpc=rpc,
        resolver=resolver,
        registry=identity_registry,
        vault_provider=vault,
        paywall_probe=probe,
    )
    return AppContainer(
        settings=settings,
        http=http,
        cache=cache,
        rate_limiter=FixedWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        ),
        parser=parser or RuleBasedIntentParser(),
        aggregator=aggregator,
        builder=builder,
        receipts=ReceiptLog(settings.receipt_store_path),
        invoices=InvoiceStore(),
        identity=identity_registry,
    )


def get_container(request: Request) -> AppContainer:
    """Dependency provider for the application container."""
    return request.app.state.container


__all__ = ["AppContainer", "build_container", "get_container"]
