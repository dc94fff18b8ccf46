"""Wallet balance scanning across supported chains."""

from __future__ import annotations

import asyncio
from typing import Protocol

import structlog

from payroute.chain.rpc import ChainRpcClient
from payroute.constants import TOKEN_ADDRESSES, get_token_decimals, is_native_token
from payroute.errors import UpstreamError
from payroute.models import Balance
from payroute.models.types import from_base_units

logger = structlog.get_logger()


class BalanceScanner(Protocol):
    """Protocol for anything that can list a wallet's balances."""

    async def scan(self, owner: str) -> list[Balance]:
        """Return every non-zero balance held by owner."""
        ...


class RpcBalanceScanner:
    """Reads every known (token, chain) pair over JSON-RPC concurrently.

    Pairs on chains without an RPC endpoint are skipped; individual read
    failures are logged and treated as zero.
    """

    def __init__(self, rpc: ChainRpcClient, tokens: dict[str, dict[str, str]] | None = None):
        self.rpc = rpc
        self.tokens = tokens if tokens is not None else TOKEN_ADDRESSES

    async def _read(self, symbol: str, chain: str, address: str, owner: str) -> Balance | None:
        try:
            if is_native_token(address):
                raw = await self.rpc.get_native_balance(chain, owner)
            else:
                raw = await self.rpc.get_erc20_balance(chain, address, owner)
        except UpstreamError as e:
            logger.warning("balance_read_failed", token=symbol, chain=chain, error=str(e))
            return None

        if raw <= 0:
            return None
        amount = from_base_units(raw, get_token_decimals(symbol))
        return Balance(token=symbol, chain=chain, amount=f"{amount.normalize():f}")

    async def scan(self, owner: str) -> list[Balance]:
        reads = [
            self._read(symbol, chain, address, owner)
            for symbol, per_chain in self.tokens.items()
            for chain, address in per_chain.items()
            if self.rpc.supports(chain)
        ]
        results = await asyncio.gather(*reads)
        balances = [balance for balance in results if balance is not None]
        logger.debug("balances_scanned", owner=owner, count=len(balances))
        return balances


class StaticBalanceScanner:
    """Scanner returning fixed balances per owner (demo wallets and tests)."""

    def __init__(self, balances: dict[str, list[Balance]] | None = None):
        self.balances = {owner.lower(): list(items) for owner, items in (balances or {}).items()}

    async def scan(self, owner: str) -> list[Balance]:
        return list(self.balances.get(owner.lower(), []))


__all__ = ["BalanceScanner", "RpcBalanceScanner", "StaticBalanceScanner"]
