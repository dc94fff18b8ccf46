"""Tests for Pydantic models."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from payroute.models import (
    AgentResponse,
    ExecuteRequest,
    Intent,
    IntentAction,
    RecipientProfile,
    RouteOption,
    UnsignedTransaction,
)
from payroute.models.types import format_usd, parse_usd, to_base_units
from tests.helpers import make_route


class TestIntent:
    """Tests for Intent model."""

    def test_parse_camel_case(self):
        """Intent can be parsed from the wire format."""
        data = {
            "action": "transfer",
            "amount": "10.5",
            "fromToken": "usdc",
            "toToken": " usdt ",
            "fromChain": "Base",
            "toChain": "ARBITRUM",
            "toAddress": " alice.eth ",
        }
        intent = Intent.model_validate(data)
        assert intent.action == IntentAction.TRANSFER
        assert (intent.from_token, intent.to_token) == ("USDC", "USDT")
        assert (intent.from_chain, intent.to_chain) == ("base", "arbitrum")
        assert intent.to_address == "alice.eth"

    @pytest.mark.parametrize("alias", ["pay_x402", "x402", "PAY_VIA_PAYWALL"])
    def test_paywall_action_aliases(self, alias):
        """Legacy paywall action names map to pay_via_paywall."""
        intent = Intent.model_validate({"action": alias, "url": "/x402-demo"})
        assert intent.action == IntentAction.PAY_VIA_PAYWALL

    def test_unknown_action_rejected(self):
        with pytest.raises(ValidationError):
            Intent.model_validate({"action": "teleport"})

    @pytest.mark.parametrize("amount", ["0", "-1", "abc", "NaN", True])
    def test_invalid_amounts_rejected(self, amount):
        with pytest.raises(ValidationError):
            Intent(action=IntentAction.TRANSFER, amount=amount)

    def test_amount_accepts_numbers_and_thousands_separators(self):
        assert Intent(action=IntentAction.SWAP, amount=5).amount == "5"
        assert Intent(action=IntentAction.SWAP, amount="1,000.5").amount == "1000.5"

    def test_blank_strings_become_none(self):
        intent = Intent(action=IntentAction.SWAP, from_token=" ", to_address="", url=" ")
        assert intent.from_token is None
        assert intent.to_address is None
        assert intent.url is None

    def test_requires_amount(self):
        assert Intent(action=IntentAction.TRANSFER).requires_amount
        assert not Intent(action=IntentAction.CONSOLIDATE).requires_amount
        assert not Intent(action=IntentAction.PAY_VIA_PAYWALL).requires_amount


class TestRecipientProfile:
    """Tests for RecipientProfile preference parsing."""

    def test_unresolved(self):
        profile = RecipientProfile.unresolved()
        assert not profile.is_resolved
        assert not profile.has_preferences

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("0.5", 0.005), ("1%", 0.01), ("0", None), ("abc", None), (None, None)],
    )
    def test_slippage_fraction(self, raw, expected):
        profile = RecipientProfile(address="0x" + "22" * 20, preferred_slippage=raw)
        assert profile.slippage_fraction == expected

    def test_max_fee(self):
        assert RecipientProfile(max_fee="$1.50").max_fee_usd == Decimal("1.50")
        assert RecipientProfile(max_fee="-1").max_fee_usd is None

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("aave:60, Morpho:40", [("aave", 60), ("morpho", 40)]),
            ("aave:100", [("aave", 100)]),
            ("aave:60,morpho:30", None),
            ("aave:60,aave:40", None),
            ("aave:sixty,morpho:40", None),
            ("aave", None),
            (None, None),
        ],
    )
    def test_vault_allocations(self, raw, expected):
        assert RecipientProfile(allocations=raw).vault_allocations == expected

    def test_preference_summary(self):
        profile = RecipientProfile(
            preferred_token="USDC", preferred_chain="base", preferred_slippage="0.5", max_fee="1"
        )
        assert profile.preference_summary == "USDC, on base, slippage ≤0.5%, max fee $1"
        assert RecipientProfile().preference_summary is None


class TestRouteOption:
    def test_fee_value(self):
        assert make_route(fee="$1,234.50").fee_value == Decimal("1234.50")
        assert make_route(fee="0.50 USDC").fee_value == Decimal("0.50")
        assert make_route(fee="free").fee_value is None

    def test_serializes_with_aliases(self):
        route = RouteOption(
            id="v4-hook-0",
            path="Base USDC -> Base USDT",
            fee="$0.01",
            estimated_time="~15s",
            provider="Uniswap v4",
        )
        dumped = route.model_dump(by_alias=True, mode="json")
        assert dumped["estimatedTime"] == "~15s"
        assert dumped["routeType"] == "standard"


class TestEnvelopes:
    """Tests for API request and response envelopes."""

    def test_agent_response_omits_missing_routes(self):
        response = AgentResponse(
            content="Could not resolve", intent=Intent(action=IntentAction.TRANSFER)
        )
        dumped = response.model_dump(by_alias=True, exclude_none=True)
        assert "routes" not in dumped
        assert "resolvedAddress" not in dumped

    def test_execute_request_slippage_bounds(self):
        with pytest.raises(ValidationError):
            ExecuteRequest.model_validate({"routeId": "x402-pay", "slippage": 1.5})

    def test_unsigned_transaction(self):
        tx = UnsignedTransaction(
            to="0x" + "11" * 20, data="0x", chain_id=8453, provider="Approval: USDC for x"
        )
        assert tx.is_approval
        assert tx.model_dump(by_alias=True)["chainId"] == 8453

    def test_transaction_data_must_be_hex(self):
        with pytest.raises(ValidationError):
            UnsignedTransaction(to="0x" + "11" * 20, data="nothex", chain_id=1)


class TestAmountHelpers:
    def test_to_base_units_floors(self):
        assert to_base_units("10", 6) == 10_000_000
        assert to_base_units("0.0000001", 6) == 0

    def test_usd_round_trip_helpers(self):
        assert parse_usd("$0.12") == Decimal("0.12")
        assert parse_usd(None) is None
        assert format_usd(Decimal("2650")) == "$2,650.00"
        assert format_usd(0.1) == "$0.10"
