"""Tests for contract calldata encoding."""

from eth_abi import decode  # type: ignore[attr-defined]

from payroute.chain.encoding import (
    DEPOSIT_TO_YIELD_SELECTOR,
    HOOK_SWAP_SELECTOR,
    decode_uint256,
    encode_approve,
    encode_balance_of,
    encode_deposit_to_yield,
    encode_multicall,
    encode_set_text,
    encode_transfer,
    namehash,
)
from tests.helpers import ALICE, ALICE_VAULT, LIFI_DIAMOND, USDC_BASE


class TestErc20Encoding:
    """ERC-20 calls use the standard selectors and 32-byte words."""

    def test_approve(self):
        data = encode_approve(LIFI_DIAMOND, 10_000_000)
        assert data.startswith("0x095ea7b3")
        assert len(data) == 2 + 8 + 64 * 2

        spender, amount = decode(["address", "uint256"], bytes.fromhex(data[10:]))
        assert spender.lower() == LIFI_DIAMOND.lower()
        assert amount == 10_000_000

    def test_transfer(self):
        data = encode_transfer(ALICE, 500_000)
        assert data.startswith("0xa9059cbb")
        recipient, amount = decode(["address", "uint256"], bytes.fromhex(data[10:]))
        assert recipient.lower() == ALICE
        assert amount == 500_000

    def test_balance_of(self):
        data = encode_balance_of(ALICE)
        assert data.startswith("0x70a08231")
        assert data.endswith(ALICE[2:])


class TestDecodeUint256:
    def test_empty_result_is_zero(self):
        assert decode_uint256("0x") == 0

    def test_word(self):
        assert decode_uint256("0x" + f"{12345:064x}") == 12345

    def test_without_prefix(self):
        assert decode_uint256(f"{7:064x}") == 7


class TestNamehash:
    """ENS namehash test vectors."""

    def test_empty_name(self):
        assert namehash("") == b"\x00" * 32

    def test_eth(self):
        assert namehash("eth").hex() == (
            "93cdeb708b7545dc668eb9280176169d1c33cfd8ed6f04690a0bcc88a93fc4ae"
        )

    def test_foo_eth(self):
        assert namehash("foo.eth").hex() == (
            "de9b09fd7c5f901e23a3f19fecc54828e9c848539801e86591bd9801b019f84f"
        )

    def test_case_insensitive(self):
        assert namehash("Foo.ETH") == namehash("foo.eth")


class TestResolverEncoding:
    def test_set_text_wrapped_in_multicall(self):
        node = namehash("alice.eth")
        call = encode_set_text(node, "com.payagent.token", "USDC")
        assert call[:4].hex() == "10f13a8c"

        data = encode_multicall([call, call])
        assert data.startswith("0xac9650d8")
        (calls,) = decode(["bytes[]"], bytes.fromhex(data[10:]))
        assert list(calls) == [call, call]


class TestYieldRouterEncoding:
    def test_deposit_to_yield(self):
        data = encode_deposit_to_yield(ALICE, ALICE_VAULT, USDC_BASE, 50_000_000)
        assert len(DEPOSIT_TO_YIELD_SELECTOR) == 4
        assert data.startswith("0x" + DEPOSIT_TO_YIELD_SELECTOR.hex())

        recipient, vault, token, amount = decode(
            ["address", "address", "address", "uint256"], bytes.fromhex(data[10:])
        )
        assert recipient.lower() == ALICE
        assert vault.lower() == ALICE_VAULT
        assert token.lower() == USDC_BASE
        assert amount == 50_000_000

    def test_hook_selector_differs_from_deposit(self):
        assert HOOK_SWAP_SELECTOR != DEPOSIT_TO_YIELD_SELECTOR
