"""Action -> provider mapping table.

Adding a provider for an action is a registration, not a code change in the
aggregator.
"""

from __future__ import annotations

from payroute.models import IntentAction
from payroute.routing.base import RouteProvider


class ProviderRegistry:
    """Registry of route providers per intent action.

    Usage:
        registry = ProviderRegistry()
        registry.register(IntentAction.SWAP, hook_provider)
        registry.register(IntentAction.SWAP, lifi_provider)

        for provider in registry.providers_for(IntentAction.SWAP):
            ...
    """

    def __init__(self) -> None:
        self._providers: dict[IntentAction, list[RouteProvider]] = {}

    def register(self, action: IntentAction, provider: RouteProvider) -> None:
        providers = self._providers.setdefault(action, [])
        if provider not in providers:
            providers.append(provider)

    def providers_for(self, action: IntentAction) -> list[RouteProvider]:
        """Providers for an action, lowest precedence first (stable)."""
        return sorted(self._providers.get(action, []), key=lambda p: p.precedence)

    def actions(self) -> list[IntentAction]:
        return list(self._providers)


def build_default_registry(
    *,
    hook: RouteProvider,
    cross_chain: RouteProvider,
    vault: RouteProvider,
    paywall: RouteProvider,
) -> ProviderRegistry:
    """Standard wiring: hook only for swaps, LI.FI for transfers and swaps."""
    registry = ProviderRegistry()
    registry.register(IntentAction.TRANSFER, cross_chain)
    registry.register(IntentAction.SWAP, hook)
    registry.register(IntentAction.SWAP, cross_chain)
    registry.register(IntentAction.DEPOSIT, vault)
    registry.register(IntentAction.YIELD, vault)
    registry.register(IntentAction.PAY_VIA_PAYWALL, paywall)
    return registry


__all__ = ["ProviderRegistry", "build_default_registry"]
