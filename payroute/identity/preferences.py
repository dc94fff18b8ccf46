"""Transactions that write a user's payment preferences and invoices to their name."""

from __future__ import annotations

import json

import structlog
from pydantic import ValidationError

from payroute.chain.encoding import encode_multicall, encode_set_text, namehash
from payroute.constants import (
    CHAIN_IDS,
    TEXT_RECORD_CHAIN,
    TEXT_RECORD_INVOICE_PREFIX,
    TEXT_RECORD_TOKEN,
)
from payroute.errors import UpstreamError
from payroute.identity.registry import IdentityRegistry
from payroute.models import UnsignedTransaction
from payroute.models.records import InvoiceRecord

logger = structlog.get_logger()

# ENS lives on mainnet regardless of where payments settle
ENS_CHAIN_ID = CHAIN_IDS["ethereum"]


def invoice_record_key(invoice_id: str) -> str:
    return f"{TEXT_RECORD_INVOICE_PREFIX}{invoice_id}"


async def lookup_resolver(registry: IdentityRegistry, name: str) -> str:
    """Return the resolver contract a name's records are written to.

    Raises:
        UpstreamError: If the lookup fails or the name has no resolver
    """
    try:
        resolver_address = await registry.get_resolver(name.lower())
    except Exception as e:
        logger.warning("resolver_lookup_failed", name=name, error=str(e))
        raise UpstreamError(f"Could not look up resolver for {name}") from e
    if not resolver_address:
        raise UpstreamError(f"No resolver found for {name}")
    return resolver_address


def build_set_preference_transaction(
    name: str,
    token: str,
    chain: str,
    resolver_address: str,
) -> UnsignedTransaction:
    """Build a resolver multicall setting the token and chain text records.

    Args:
        name: The user's ENS name (e.g. "alice.eth")
        token: Preferred token symbol
        chain: Preferred chain name
        resolver_address: The name's resolver contract

    Returns:
        Unsigned mainnet transaction calling multicall([setText, setText])
    """
    node = namehash(name.strip().lower())
    calls = [
        encode_set_text(node, TEXT_RECORD_TOKEN, token),
        encode_set_text(node, TEXT_RECORD_CHAIN, chain),
    ]
    return UnsignedTransaction(
        to=resolver_address,
        data=encode_multicall(calls),
        value="0",
        chain_id=ENS_CHAIN_ID,
        provider="ENS",
        description=f"Set {name} payment preferences: {token} on {chain}",
    )


def build_set_invoice_transaction(
    name: str,
    invoice: InvoiceRecord,
    resolver_address: str,
) -> UnsignedTransaction:
    """Build a setText call storing an invoice as JSON under flowfi.invoice.<id>."""
    node = namehash(name.strip().lower())
    value = invoice.model_dump_json(by_alias=True, exclude_none=True)
    calldata = encode_set_text(node, invoice_record_key(invoice.id or ""), value)
    return UnsignedTransaction(
        to=resolver_address,
        data="0x" + calldata.hex(),
        value="0",
        chain_id=ENS_CHAIN_ID,
        provider="ENS",
        description=f"Store invoice {invoice.id} in {name}",
    )


async def read_invoice_record(
    registry: IdentityRegistry, name: str, invoice_id: str
) -> InvoiceRecord | None:
    """Read an invoice back from a name's text records.

    Returns None when the record is unset or does not hold an invoice.
    """
    key = invoice_record_key(invoice_id)
    raw = await registry.get_text(name.lower(), key)
    if not raw:
        return None
    try:
        return InvoiceRecord.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as e:
        logger.info("invoice_record_unreadable", name=name, key=key, error=str(e))
        return None


__all__ = [
    "ENS_CHAIN_ID",
    "build_set_invoice_transaction",
    "build_set_preference_transaction",
    "invoice_record_key",
    "lookup_resolver",
    "read_invoice_record",
]
