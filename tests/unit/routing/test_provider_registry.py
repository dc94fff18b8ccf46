"""Tests for the action -> provider mapping."""

from payroute.models import IntentAction
from payroute.routing.registry import ProviderRegistry, build_default_registry
from tests.conftest import MockProvider


def default_registry():
    providers = {
        "hook": MockProvider("v4-hook", 10),
        "cross_chain": MockProvider("lifi", 20),
        "vault": MockProvider("vault", 30),
        "paywall": MockProvider("x402", 40),
    }
    return build_default_registry(**providers), providers


class TestDefaultRegistry:
    def test_swaps_try_hook_then_lifi(self):
        registry, _ = default_registry()
        names = [p.name for p in registry.providers_for(IntentAction.SWAP)]
        assert names == ["v4-hook", "lifi"]

    def test_transfers_use_lifi_only(self):
        registry, _ = default_registry()
        assert [p.name for p in registry.providers_for(IntentAction.TRANSFER)] == ["lifi"]

    def test_deposit_and_yield_use_vault(self):
        registry, providers = default_registry()
        assert registry.providers_for(IntentAction.DEPOSIT) == [providers["vault"]]
        assert registry.providers_for(IntentAction.YIELD) == [providers["vault"]]

    def test_paywall(self):
        registry, providers = default_registry()
        assert registry.providers_for(IntentAction.PAY_VIA_PAYWALL) == [providers["paywall"]]

    def test_consolidate_has_no_direct_providers(self):
        registry, _ = default_registry()
        assert registry.providers_for(IntentAction.CONSOLIDATE) == []


class TestProviderRegistry:
    def test_sorted_by_precedence_regardless_of_registration_order(self):
        registry = ProviderRegistry()
        registry.register(IntentAction.SWAP, MockProvider("late", 50))
        registry.register(IntentAction.SWAP, MockProvider("early", 5))

        assert [p.name for p in registry.providers_for(IntentAction.SWAP)] == ["early", "late"]

    def test_duplicate_registration_ignored(self):
        registry = ProviderRegistry()
        provider = MockProvider("lifi", 20)
        registry.register(IntentAction.TRANSFER, provider)
        registry.register(IntentAction.TRANSFER, provider)

        assert registry.providers_for(IntentAction.TRANSFER) == [provider]
        assert registry.actions() == [IntentAction.TRANSFER]
