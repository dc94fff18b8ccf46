"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Wallet, contract and token addresses
- factories: Intent, route, settings and LI.FI payload factory functions
"""

from tests.helpers.constants import (
    ALICE,
    ALICE_VAULT,
    BOB,
    ENS_RESOLVER,
    HOOK_ROUTER_BASE,
    LIFI_DIAMOND,
    PAYWALL_RECIPIENT,
    SENDER,
    USDC_ARBITRUM,
    USDC_BASE,
    USDT_BASE,
)
from tests.helpers.factories import (
    make_intent,
    make_lifi_quote,
    make_lifi_route,
    make_lifi_step,
    make_route,
    make_settings,
)

__all__ = [
    # Constants
    "SENDER",
    "ALICE",
    "BOB",
    "ALICE_VAULT",
    "HOOK_ROUTER_BASE",
    "ENS_RESOLVER",
    "LIFI_DIAMOND",
    "PAYWALL_RECIPIENT",
    "USDC_BASE",
    "USDT_BASE",
    "USDC_ARBITRUM",
    # Factories
    "make_intent",
    "make_route",
    "make_settings",
    "make_lifi_step",
    "make_lifi_route",
    "make_lifi_quote",
]
