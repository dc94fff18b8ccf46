"""Recipient identity: name resolution, preference records and receipts."""

from payroute.identity.preferences import build_set_preference_transaction
from payroute.identity.receipts import ReceiptLog, generate_receipt_subname
from payroute.identity.registry import (
    IdentityRegistry,
    InMemoryIdentityRegistry,
    Web3IdentityRegistry,
)
from payroute.identity.resolver import PreferenceResolver, requires_resolution

__all__ = [
    "IdentityRegistry",
    "InMemoryIdentityRegistry",
    "PreferenceResolver",
    "ReceiptLog",
    "Web3IdentityRegistry",
    "build_set_preference_transaction",
    "generate_receipt_subname",
    "requires_resolution",
]
