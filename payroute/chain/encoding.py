"""Calldata encoding for the contracts the execution builder targets.

Covers ERC-20 reads/writes, the ENS public resolver (setText + multicall),
the YieldRouter deposit entrypoint and the stable-swap hook router.
"""

from __future__ import annotations

from eth_abi import decode, encode  # type: ignore[attr-defined]
from eth_utils import function_signature_to_4byte_selector, keccak

from payroute.models.types import normalize_address

# ERC-20
# approve(address,uint256)
APPROVE_SELECTOR = bytes.fromhex("095ea7b3")
# transfer(address,uint256)
TRANSFER_SELECTOR = bytes.fromhex("a9059cbb")
# balanceOf(address)
BALANCE_OF_SELECTOR = bytes.fromhex("70a08231")
# allowance(address,address)
ALLOWANCE_SELECTOR = bytes.fromhex("dd62ed3e")

# ENS public resolver
# setText(bytes32,string,string)
SET_TEXT_SELECTOR = bytes.fromhex("10f13a8c")
# multicall(bytes[])
MULTICALL_SELECTOR = bytes.fromhex("ac9650d8")

# YieldRouter: called by LI.FI on the destination chain once the bridged USDC lands
DEPOSIT_TO_YIELD_SELECTOR = function_signature_to_4byte_selector(
    "depositToYield(address,address,address,uint256)"
)

# Stable-swap hook router
HOOK_SWAP_SELECTOR = function_signature_to_4byte_selector(
    "swapExactInput(address,address,uint256,uint256,address)"
)


def _address_bytes(address: str) -> bytes:
    return bytes.fromhex(normalize_address(address)[2:])


def _to_hex(calldata: bytes) -> str:
    return "0x" + calldata.hex()


def encode_approve(spender: str, amount: int) -> str:
    """Encode ERC20.approve(spender, amount)."""
    params = encode(["address", "uint256"], [_address_bytes(spender), amount])
    return _to_hex(APPROVE_SELECTOR + params)


def encode_transfer(recipient: str, amount: int) -> str:
    """Encode ERC20.transfer(recipient, amount)."""
    params = encode(["address", "uint256"], [_address_bytes(recipient), amount])
    return _to_hex(TRANSFER_SELECTOR + params)


def encode_balance_of(owner: str) -> str:
    """Encode ERC20.balanceOf(owner)."""
    return _to_hex(BALANCE_OF_SELECTOR + encode(["address"], [_address_bytes(owner)]))


def encode_allowance(owner: str, spender: str) -> str:
    """Encode ERC20.allowance(owner, spender)."""
    params = encode(["address", "address"], [_address_bytes(owner), _address_bytes(spender)])
    return _to_hex(ALLOWANCE_SELECTOR + params)


def decode_uint256(result: str) -> int:
    """Decode a single uint256 eth_call return value."""
    raw = bytes.fromhex(result[2:] if result.startswith("0x") else result)
    if not raw:
        return 0
    (value,) = decode(["uint256"], raw)
    return int(value)


def namehash(name: str) -> bytes:
    """ENS namehash (ENSIP-1) of an already-normalized name."""
    node = b"\x00" * 32
    if not name:
        return node
    for label in reversed(name.lower().split(".")):
        node = keccak(node + keccak(text=label))
    return node


def encode_set_text(node: bytes, key: str, value: str) -> bytes:
    """Encode PublicResolver.setText(node, key, value) as raw bytes."""
    return SET_TEXT_SELECTOR + encode(["bytes32", "string", "string"], [node, key, value])


def encode_multicall(calls: list[bytes]) -> str:
    """Encode PublicResolver.multicall(calls)."""
    return _to_hex(MULTICALL_SELECTOR + encode(["bytes[]"], [calls]))


def encode_deposit_to_yield(recipient: str, vault: str, token: str, amount: int) -> str:
    """Encode YieldRouter.depositToYield(recipient, vault, token, amount)."""
    params = encode(
        ["address", "address", "address", "uint256"],
        [_address_bytes(recipient), _address_bytes(vault), _address_bytes(token), amount],
    )
    return _to_hex(DEPOSIT_TO_YIELD_SELECTOR + params)


def encode_hook_swap(
    token_in: str,
    token_out: str,
    amount_in: int,
    min_amount_out: int,
    recipient: str,
) -> str:
    """Encode StableHookRouter.swapExactInput(...)."""
    params = encode(
        ["address", "address", "uint256", "uint256", "address"],
        [
            _address_bytes(token_in),
            _address_bytes(token_out),
            amount_in,
            min_amount_out,
            _address_bytes(recipient),
        ],
    )
    return _to_hex(HOOK_SWAP_SELECTOR + params)


__all__ = [
    "APPROVE_SELECTOR",
    "TRANSFER_SELECTOR",
    "SET_TEXT_SELECTOR",
    "MULTICALL_SELECTOR",
    "decode_uint256",
    "encode_allowance",
    "encode_approve",
    "encode_balance_of",
    "encode_deposit_to_yield",
    "encode_hook_swap",
    "encode_multicall",
    "encode_set_text",
    "encode_transfer",
    "namehash",
]
