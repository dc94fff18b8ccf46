"""Runtime configuration for the payment router."""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from payroute.constants import CHAIN_IDS, DEFAULT_CHAIN, YIELD_ROUTER_ADDRESS

DEFAULT_RPC_URLS = {
    "ethereum": "https://eth.llamarpc.com",
    "base": "https://mainnet.base.org",
    "arbitrum": "https://arb1.arbitrum.io/rpc",
    "optimism": "https://mainnet.optimism.io",
    "polygon": "https://polygon-rpc.com",
}


def _parse_mapping(raw: str) -> dict[str, str]:
    """Parse "base=0xabc,arbitrum=0xdef" into a dict (keys lowercased)."""
    result: dict[str, str] = {}
    for part in raw.split(","):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        if key.strip() and value.strip():
            result[key.strip().lower()] = value.strip()
    return result


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for routing, quoting and the API.

    Attributes:
        lifi_api_url: Base URL of the LI.FI REST API
        lifi_api_key: Optional API key sent as x-lifi-api-key
        lifi_integrator: Integrator string attached to LI.FI requests
        eth_rpc_url: Mainnet RPC used for ENS resolution
        rpc_urls: Chain name -> JSON-RPC URL for balance and allowance reads
        hook_routers: Chain name -> stable-swap hook router address. Chains
            without a router never produce same-chain hook routes. None are
            configured by default, so hook routes are off until set.
        yield_router_address: Destination contract for vault deposits
        provider_timeout_seconds: Upper bound for a single provider call
        http_timeout_seconds: Timeout for individual upstream HTTP requests
        route_cache_ttl_seconds: Lifetime of memoized provider quotes
        rate_limit_max_requests: Requests allowed per window per client
        rate_limit_window_seconds: Rate-limit window length
        default_chain: Chain assumed when an intent leaves it unspecified
        gold_spot_price_usd: Reference price (USD per token) for commodity legs
        receipt_store_path: JSON file backing the receipt log
    """

    lifi_api_url: str = "https://li.quest/v1"
    lifi_api_key: str | None = None
    lifi_integrator: str = "payroute"
    eth_rpc_url: str = DEFAULT_RPC_URLS["ethereum"]
    rpc_urls: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_RPC_URLS))
    hook_routers: dict[str, str] = field(default_factory=dict)
    yield_router_address: str = YIELD_ROUTER_ADDRESS
    provider_timeout_seconds: float = 10.0
    http_timeout_seconds: float = 8.0
    route_cache_ttl_seconds: float = 30.0
    rate_limit_max_requests: int = 20
    rate_limit_window_seconds: float = 60.0
    default_chain: str = DEFAULT_CHAIN
    gold_spot_price_usd: Decimal = Decimal("2650")
    receipt_store_path: Path = Path("data/ens-receipts.json")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from PAYROUTE_* environment variables.

        Per-chain RPC URLs come from PAYROUTE_RPC_<CHAIN> (e.g.
        PAYROUTE_RPC_BASE); hook routers from PAYROUTE_HOOK_ROUTERS as
        comma-separated chain=address pairs.
        """
        env = os.environ
        rpc_urls = dict(DEFAULT_RPC_URLS)
        for chain in CHAIN_IDS:
            override = env.get(f"PAYROUTE_RPC_{chain.upper()}")
            if override:
                rpc_urls[chain] = override

        return cls(
            lifi_api_url=env.get("PAYROUTE_LIFI_API_URL", cls.lifi_api_url),
            lifi_api_key=env.get("PAYROUTE_LIFI_API_KEY") or None,
            lifi_integrator=env.get("PAYROUTE_LIFI_INTEGRATOR", cls.lifi_integrator),
            eth_rpc_url=env.get("PAYROUTE_ETH_RPC_URL", rpc_urls["ethereum"]),
            rpc_urls=rpc_urls,
            hook_routers=_parse_mapping(env.get("PAYROUTE_HOOK_ROUTERS", "")),
            yield_router_address=env.get("PAYROUTE_YIELD_ROUTER", YIELD_ROUTER_ADDRESS),
            provider_timeout_seconds=float(env.get("PAYROUTE_PROVIDER_TIMEOUT", "10")),
            http_timeout_seconds=float(env.get("PAYROUTE_HTTP_TIMEOUT", "8")),
            route_cache_ttl_seconds=float(env.get("PAYROUTE_ROUTE_CACHE_TTL", "30")),
            rate_limit_max_requests=int(env.get("PAYROUTE_RATE_LIMIT_MAX", "20")),
            rate_limit_window_seconds=float(env.get("PAYROUTE_RATE_LIMIT_WINDOW", "60")),
            default_chain=env.get("PAYROUTE_DEFAULT_CHAIN", DEFAULT_CHAIN),
            gold_spot_price_usd=Decimal(env.get("PAYROUTE_GOLD_SPOT_USD", "2650")),
            receipt_store_path=Path(
                env.get("PAYROUTE_RECEIPT_STORE", "data/ens-receipts.json")
            ),
        )

