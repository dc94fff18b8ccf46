"""Identity registry implementations for name resolution.

The resolver only needs three reads: the address a name points to, a text
record, and the resolver contract (for preference writes).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()


class IdentityRegistry(Protocol):
    """Protocol for name registries (ENS in production, in-memory in tests)."""

    async def resolve_address(self, name: str) -> str | None:
        """Return the address a name points to, or None if unregistered."""
        ...

    async def get_text(self, name: str, key: str) -> str | None:
        """Return a text record value, or None if unset."""
        ...

    async def get_resolver(self, name: str) -> str | None:
        """Return the resolver contract address for a name, or None."""
        ...


@dataclass
class NameRecord:
    """One registered name in an InMemoryIdentityRegistry."""

    address: str | None
    texts: dict[str, str] = field(default_factory=dict)
    resolver: str | None = None


class InMemoryIdentityRegistry:
    """Registry backed by a dict of names, with call tracking for assertions."""

    def __init__(self, names: dict[str, NameRecord] | None = None):
        self.names = {name.lower(): record for name, record in (names or {}).items()}
        self.calls: list[tuple[str, str]] = []  # (method, name)

    def register(
        self,
        name: str,
        address: str | None,
        texts: dict[str, str] | None = None,
        resolver: str | None = None,
    ) -> None:
        self.names[name.lower()] = NameRecord(address, dict(texts or {}), resolver)

    async def resolve_address(self, name: str) -> str | None:
        self.calls.append(("resolve_address", name))
        record = self.names.get(name.lower())
        return record.address if record else None

    async def get_text(self, name: str, key: str) -> str | None:
        self.calls.append(("get_text", name))
        record = self.names.get(name.lower())
        return record.texts.get(key) if record else None

    async def get_resolver(self, name: str) -> str | None:
        self.calls.append(("get_resolver", name))
        record = self.names.get(name.lower())
        return record.resolver if record else None


class Web3IdentityRegistry:
    """ENS registry reads through web3's async ENS module."""

    def __init__(self, rpc_url: str):
        """Initialize with a mainnet RPC URL.

        Args:
            rpc_url: HTTP RPC URL (e.g., "https://eth.llamarpc.com")
        """
        try:
            from web3 import AsyncHTTPProvider, AsyncWeb3
        except ImportError as e:
            raise ImportError(
                "web3 package required for Web3IdentityRegistry. Install with: pip install web3"
            ) from e

        self.w3: Any = AsyncWeb3(AsyncHTTPProvider(rpc_url))

    async def resolve_address(self, name: str) -> str | None:
        address = await self.w3.ens.address(name)
        return str(address) if address else None

    async def get_text(self, name: str, key: str) -> str | None:
        value = await self.w3.ens.get_text(name, key)
        return value or None

    async def get_resolver(self, name: str) -> str | None:
        resolver = await self.w3.ens.resolver(name)
        return str(resolver.address) if resolver is not None else None


__all__ = [
    "IdentityRegistry",
    "InMemoryIdentityRegistry",
    "NameRecord",
    "Web3IdentityRegistry",
]
