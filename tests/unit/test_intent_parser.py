"""Tests for the rule-based intent parser."""

import pytest

from payroute.errors import ClientInputError, IntentParseError
from payroute.models import IntentAction
from payroute.parser import RuleBasedIntentParser
from tests.helpers import ALICE

parser = RuleBasedIntentParser()


class TestTransfer:
    """Tests for send/transfer phrasings."""

    def test_send_to_name_on_chain(self):
        intent = parser.parse("send 10 USDC to alice.eth on base")

        assert intent.action == IntentAction.TRANSFER
        assert intent.amount == "10"
        assert intent.from_token == "USDC"
        assert intent.to_address == "alice.eth"
        assert intent.to_chain == "base"
        assert intent.from_chain is None

    def test_from_and_to_chains(self):
        intent = parser.parse(f"transfer 25 usdc to {ALICE} from arbitrum to base")

        assert intent.to_address == ALICE
        assert intent.from_chain == "arbitrum"
        assert intent.to_chain == "base"

    def test_recipient_name_is_not_read_as_chain(self):
        intent = parser.parse("pay 3 USDC to vitalik.eth")
        assert intent.to_chain is None

    def test_comma_decimal_and_trailing_punctuation(self):
        intent = parser.parse("send 5,5 USDC to bob.eth!")

        assert intent.amount == "5.5"
        assert intent.to_address == "bob.eth"

    def test_requested_output_token(self):
        intent = parser.parse("send 10 USDC to alice.eth as USDT")
        assert intent.to_token == "USDT"


class TestOtherActions:
    def test_swap(self):
        intent = parser.parse("swap 100 USDC to USDT on arbitrum")

        assert intent.action == IntentAction.SWAP
        assert (intent.from_token, intent.to_token) == ("USDC", "USDT")
        assert intent.from_chain == "arbitrum"
        assert intent.to_chain == "arbitrum"

    def test_deposit_with_protocol(self):
        intent = parser.parse("deposit 50 USDC into morpho")

        assert intent.action == IntentAction.DEPOSIT
        assert intent.amount == "50"
        assert intent.vault_protocol == "morpho"

    def test_deposit_without_protocol(self):
        intent = parser.parse("earn yield: deposit 20 USDC from arbitrum")

        assert intent.vault_protocol is None
        assert intent.from_chain == "arbitrum"

    def test_consolidate(self):
        intent = parser.parse("consolidate my balances into usdc on base")

        assert intent.action == IntentAction.CONSOLIDATE
        assert intent.to_token == "USDC"
        assert intent.to_chain == "base"
        assert intent.amount is None

    @pytest.mark.parametrize(
        ("message", "url"),
        [
            ("pay for /x402-demo", "/x402-demo"),
            ("unlock https://paywall.test/report please", "https://paywall.test/report"),
        ],
    )
    def test_paywall(self, message, url):
        intent = parser.parse(message)

        assert intent.action == IntentAction.PAY_VIA_PAYWALL
        assert intent.url == url


class TestFailures:
    def test_empty_message(self):
        with pytest.raises(IntentParseError, match="Message is required"):
            parser.parse("   ")

    def test_unrecognized_message_is_client_error(self):
        with pytest.raises(ClientInputError, match="couldn't understand"):
            parser.parse("what's the weather like?")
