"""Minimal JSON-RPC client for the chain reads the router needs.

Only eth_call and eth_getBalance are used: ERC-20 balances and allowances
for consolidation and approval checks.
"""

from __future__ import annotations

from itertools import count
from typing import Any

import httpx
import structlog

from payroute.chain.encoding import decode_uint256, encode_allowance, encode_balance_of
from payroute.errors import UpstreamError

logger = structlog.get_logger()


class ChainRpcClient:
    """JSON-RPC over a shared httpx.AsyncClient, one endpoint per chain."""

    def __init__(self, http: httpx.AsyncClient, rpc_urls: dict[str, str]):
        """Initialize the client.

        Args:
            http: Shared async HTTP client (owned by the caller)
            rpc_urls: Chain name -> JSON-RPC endpoint
        """
        self.http = http
        self.rpc_urls = rpc_urls
        self._ids = count(1)

    def supports(self, chain: str) -> bool:
        return chain in self.rpc_urls

    async def request(self, chain: str, method: str, params: list[Any]) -> Any:
        """Send one JSON-RPC request and return its result.

        Raises:
            UpstreamError: If the chain has no endpoint, the HTTP call fails
                or the node returns a JSON-RPC error
        """
        url = self.rpc_urls.get(chain)
        if url is None:
            raise UpstreamError(f"No RPC endpoint configured for {chain}")

        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self.http.post(url, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("rpc_request_failed", chain=chain, method=method, error=str(e))
            raise UpstreamError(f"RPC request to {chain} failed: {e}") from e

        if body.get("error"):
            message = body["error"].get("message", "unknown error")
            logger.warning("rpc_error_response", chain=chain, method=method, error=message)
            raise UpstreamError(f"RPC error on {chain}: {message}")
        return body.get("result")

    async def eth_call(self, chain: str, to: str, data: str) -> str:
        result = await self.request(chain, "eth_call", [{"to": to, "data": data}, "latest"])
        return result or "0x"

    async def get_native_balance(self, chain: str, owner: str) -> int:
        result = await self.request(chain, "eth_getBalance", [owner, "latest"])
        return int(result or "0x0", 16)

    async def get_erc20_balance(self, chain: str, token: str, owner: str) -> int:
        return decode_uint256(await self.eth_call(chain, token, encode_balance_of(owner)))

    async def get_allowance(self, chain: str, token: str, owner: str, spender: str) -> int:
        return decode_uint256(await self.eth_call(chain, token, encode_allowance(owner, spender)))


__all__ = ["ChainRpcClient"]
