"""Pytest configuration and fixtures."""

import asyncio
import json
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from payroute.api.deps import AppContainer, build_container, get_container
from payroute.api.main import app
from payroute.chain.balances import StaticBalanceScanner
from payroute.identity.registry import InMemoryIdentityRegistry
from payroute.models import QuoteResult, RouteOption
from payroute.routing.base import RouteQuery
from tests.helpers.constants import ALICE, ALICE_VAULT, BOB, ENS_RESOLVER
from tests.helpers.factories import make_settings

# =============================================================================
# Mock classes for dependency injection
# =============================================================================


class MockProvider:
    """Route provider returning canned results.

    Usage:
        # Fixed routes
        provider = MockProvider("hook", 10, routes=[route])

        # Provider that blows up or hangs
        provider = MockProvider("broken", 20, raises=RuntimeError("boom"))
        provider = MockProvider("slow", 30, delay=5.0)
    """

    def __init__(
        self,
        name: str,
        precedence: int,
        routes: list[RouteOption] | None = None,
        error: str | None = None,
        note: str | None = None,
        raises: Exception | None = None,
        delay: float = 0.0,
        applies: bool = True,
    ) -> None:
        self.name = name
        self.precedence = precedence
        self.routes = routes or []
        self.error = error
        self.note = note
        self.raises = raises
        self.delay = delay
        self.applies = applies
        self.queries: list[RouteQuery] = []  # Track calls for assertions

    def applies_to(self, query: RouteQuery) -> bool:
        return self.applies

    async def find_routes(self, query: RouteQuery) -> QuoteResult:
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        if self.routes:
            return QuoteResult.found(self.routes, note=self.note)
        return QuoteResult.empty(self.error)


Responder = Callable[[httpx.Request], httpx.Response]


class MockUpstream:
    """Scriptable upstream for an httpx.MockTransport.

    Handlers are matched by method and URL prefix, longest prefix first.
    Unmatched requests get a 404 so tests notice unexpected calls.

    Usage:
        upstream = MockUpstream()
        upstream.json("POST", "https://lifi.test/v1/advanced/routes", {"routes": []})
        http = upstream.client()
    """

    def __init__(self) -> None:
        self.handlers: list[tuple[str, str, Responder]] = []
        self.requests: list[httpx.Request] = []  # Track calls for assertions

    def on(self, method: str, url_prefix: str, responder: Responder) -> None:
        self.handlers.append((method.upper(), url_prefix, responder))
        self.handlers.sort(key=lambda handler: len(handler[1]), reverse=True)

    def json(
        self,
        method: str,
        url_prefix: str,
        body: Any,
        status: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.on(
            method,
            url_prefix,
            lambda _request: httpx.Response(status, json=body, headers=headers),
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        for method, prefix, responder in self.handlers:
            if request.method == method and url.startswith(prefix):
                return responder(request)
        return httpx.Response(404, json={"message": f"no mock for {request.method} {url}"})

    def requests_to(self, url_prefix: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).startswith(url_prefix)]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def rpc_uint_responder(value: int | Callable[[dict[str, Any]], int]) -> Responder:
    """JSON-RPC responder answering every call with one uint256.

    The value may be a function of the decoded request payload.
    """

    def respond(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        result = value(payload) if callable(value) else value
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": payload["id"], "result": f"0x{result:064x}"}
        )

    return respond


def x402_demo_responder(request: httpx.Request) -> httpx.Response:
    """A 402 paywall asking 0.50 USDC on Base, like the demo endpoint."""
    payment = {
        "amount": "0.50",
        "token": "USDC",
        "chain": "base",
        "recipient": "0x742d35Cc6634C0532925a3b844Bc9e7595f2bD1e",
    }
    return httpx.Response(
        402,
        json={"message": "Payment Required", "payment": payment},
        headers={"X-Payment": json.dumps(payment)},
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def upstream() -> MockUpstream:
    """Fresh scriptable upstream for LI.FI, RPC and paywall requests."""
    return MockUpstream()


@pytest.fixture
def identity_registry() -> InMemoryIdentityRegistry:
    """Registry with alice.eth (full preferences) and bob.eth (none)."""
    registry = InMemoryIdentityRegistry()
    registry.register(
        "alice.eth",
        ALICE,
        texts={
            "com.payagent.chain": "base",
            "com.payagent.token": "usdc",
            "com.payagent.slippage": "0.5",
            "com.payagent.maxFee": "1.00",
            "description": "Alice's payments",
            "avatar": "https://example.com/alice.png",
            "yieldroute.vault": ALICE_VAULT,
        },
        resolver=ENS_RESOLVER,
    )
    registry.register("bob.eth", BOB)
    return registry


@pytest.fixture
def container(upstream, identity_registry, tmp_path) -> AppContainer:
    """Application container wired to the mock upstream and in-memory names."""
    return build_container(
        make_settings(receipt_store_path=tmp_path / "receipts.json"),
        http=upstream.client(),
        identity_registry=identity_registry,
        balance_scanner=StaticBalanceScanner(),
    )


@pytest.fixture
def api_client(container) -> Iterator[TestClient]:
    """Test client with the container injected in place of the startup one."""
    app.dependency_overrides[get_container] = lambda: container
    yield TestClient(app)
    app.dependency_overrides.clear()
