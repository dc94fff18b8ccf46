"""Recipient preference resolution.

Turns a recipient identifier into a RecipientProfile. Plain addresses pass
through untouched; dotted names are looked up in the identity registry along
with the payment-preference text records.
"""

from __future__ import annotations

import asyncio

import structlog

from payroute.constants import (
    PROFILE_TEXT_RECORDS,
    TEXT_RECORD_ALLOCATIONS,
    TEXT_RECORD_AVATAR,
    TEXT_RECORD_CHAIN,
    TEXT_RECORD_DESCRIPTION,
    TEXT_RECORD_MAX_FEE,
    TEXT_RECORD_SLIPPAGE,
    TEXT_RECORD_TOKEN,
    TEXT_RECORD_VAULT,
    ZERO_ADDRESS,
    normalize_chain,
)
from payroute.identity.registry import IdentityRegistry
from payroute.models import RecipientProfile
from payroute.models.types import is_valid_address

logger = structlog.get_logger()


def requires_resolution(identifier: str | None) -> bool:
    """True for names (e.g. "alice.eth") that must be looked up."""
    if not identifier:
        return False
    identifier = identifier.strip()
    return not is_valid_address(identifier) and "." in identifier


class PreferenceResolver:
    """Resolves recipients and their declared payment preferences.

    Never raises: registry failures become an unresolved profile, and a
    failing text-record read only blanks that one preference.
    """

    def __init__(self, registry: IdentityRegistry):
        self.registry = registry

    async def resolve(self, identifier: str) -> RecipientProfile:
        identifier = identifier.strip()
        if not requires_resolution(identifier):
            return RecipientProfile(address=identifier)

        name = identifier.lower()
        try:
            address = await self.registry.resolve_address(name)
        except Exception as e:
            logger.warning("recipient_resolution_failed", name=name, error=str(e))
            return RecipientProfile.unresolved()

        if not address:
            logger.info("recipient_not_found", name=name)
            return RecipientProfile.unresolved()

        texts = await asyncio.gather(*(self._read_text(name, key) for key in PROFILE_TEXT_RECORDS))
        records = dict(zip(PROFILE_TEXT_RECORDS, texts))

        vault = records[TEXT_RECORD_VAULT]
        if vault and (not is_valid_address(vault) or vault.lower() == ZERO_ADDRESS):
            vault = None

        profile = RecipientProfile(
            address=address,
            preferred_chain=normalize_chain(records[TEXT_RECORD_CHAIN]),
            preferred_token=(records[TEXT_RECORD_TOKEN] or "").upper() or None,
            preferred_slippage=records[TEXT_RECORD_SLIPPAGE],
            max_fee=records[TEXT_RECORD_MAX_FEE],
            avatar=records[TEXT_RECORD_AVATAR],
            description=records[TEXT_RECORD_DESCRIPTION],
            vault=vault,
            allocations=records[TEXT_RECORD_ALLOCATIONS],
        )
        logger.info(
            "recipient_resolved",
            name=name,
            address=address,
            has_preferences=profile.has_preferences,
        )
        return profile

    async def _read_text(self, name: str, key: str) -> str | None:
        try:
            value = await self.registry.get_text(name, key)
        except Exception as e:
            logger.debug("text_record_read_failed", name=name, key=key, error=str(e))
            return None
        if value is None:
            return None
        return value.strip() or None


__all__ = ["PreferenceResolver", "requires_resolution"]
