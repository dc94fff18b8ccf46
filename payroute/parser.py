"""Free-text message -> Intent.

The rule-based parser covers the phrasings the chat surface needs:

    send 10 USDC to alice.eth on base
    swap 100 USDC to USDT on arbitrum
    deposit 50 USDC into aave
    consolidate my balances into USDC on base
    pay for https://example.com/report
"""

from __future__ import annotations

import re
from typing import Protocol

from payroute.constants import CHAIN_ALIASES, CHAIN_IDS, VAULT_PROTOCOLS
from payroute.errors import IntentParseError
from payroute.models import Intent, IntentAction

_AMOUNT = r"(?P<amount>\d+(?:[.,]\d+)?)"
_TOKEN = r"(?P<from_token>[A-Za-z][A-Za-z0-9]{1,9})"
_CHAIN_NAMES = "|".join(sorted({*CHAIN_IDS, *CHAIN_ALIASES}, key=len, reverse=True))

TRANSFER_RE = re.compile(
    rf"\b(?:send|transfer|pay)\s+{_AMOUNT}\s*{_TOKEN}\s+to\s+(?P<to>\S+)", re.IGNORECASE
)
SWAP_RE = re.compile(
    rf"\b(?:swap|convert|exchange)\s+{_AMOUNT}\s*{_TOKEN}\s+(?:to|for|into)\s+"
    r"(?P<to_token>[A-Za-z][A-Za-z0-9]{1,9})\b",
    re.IGNORECASE,
)
DEPOSIT_RE = re.compile(
    rf"\b(?:deposit|earn|yield|stake)\s+(?:on\s+)?{_AMOUNT}\s*{_TOKEN}", re.IGNORECASE
)
CONSOLIDATE_RE = re.compile(r"\b(?:consolidate|sweep|combine)\b", re.IGNORECASE)
URL_RE = re.compile(r"(?P<url>https?://\S+|/\S+)")
PAYWALL_RE = re.compile(r"\b(?:pay|access|unlock|x402|paywall)\b", re.IGNORECASE)
FROM_CHAIN_RE = re.compile(rf"\bfrom\s+(?P<chain>{_CHAIN_NAMES})\b", re.IGNORECASE)
ON_CHAIN_RE = re.compile(rf"\b(?:on|to)\s+(?P<chain>{_CHAIN_NAMES})\b", re.IGNORECASE)
INTO_TOKEN_RE = re.compile(r"\binto\s+(?P<token>[A-Za-z][A-Za-z0-9]{1,9})\b", re.IGNORECASE)


class IntentParser(Protocol):
    """Protocol for anything that turns user text into an Intent."""

    def parse(self, text: str) -> Intent:
        """Parse text, raising IntentParseError when nothing matches."""
        ...


def _chains(text: str, exclude: str | None = None) -> tuple[str | None, str | None]:
    """(from_chain, to_chain) mentioned in text, ignoring the recipient token."""
    scan = text.replace(exclude, " ") if exclude else text
    from_match = FROM_CHAIN_RE.search(scan)
    to_match = None
    for match in ON_CHAIN_RE.finditer(scan):
        to_match = match
    return (
        from_match.group("chain").lower() if from_match else None,
        to_match.group("chain").lower() if to_match else None,
    )


def _amount(raw: str) -> str:
    return raw.replace(",", ".")


class RuleBasedIntentParser:
    """Regular-expression intent parser for common payment phrasings."""

    def parse(self, text: str) -> Intent:
        message = (text or "").strip()
        if not message:
            raise IntentParseError("Message is required")

        url_match = URL_RE.search(message)
        if url_match and PAYWALL_RE.search(message):
            return Intent(action=IntentAction.PAY_VIA_PAYWALL, url=url_match.group("url"))

        if CONSOLIDATE_RE.search(message):
            _, to_chain = _chains(message)
            into = INTO_TOKEN_RE.search(message)
            return Intent(
                action=IntentAction.CONSOLIDATE,
                to_token=into.group("token") if into else None,
                to_chain=to_chain,
            )

        swap = SWAP_RE.search(message)
        if swap:
            from_chain, to_chain = _chains(message)
            return Intent(
                action=IntentAction.SWAP,
                amount=_amount(swap.group("amount")),
                from_token=swap.group("from_token"),
                to_token=swap.group("to_token"),
                from_chain=from_chain or to_chain,
                to_chain=to_chain,
            )

        deposit = DEPOSIT_RE.search(message)
        if deposit:
            from_chain, _ = _chains(message)
            lowered = message.lower()
            protocol = next((key for key in VAULT_PROTOCOLS if key in lowered), None)
            return Intent(
                action=IntentAction.DEPOSIT,
                amount=_amount(deposit.group("amount")),
                from_token=deposit.group("from_token"),
                from_chain=from_chain,
                vault_protocol=protocol,
            )

        transfer = TRANSFER_RE.search(message)
        if transfer:
            recipient = transfer.group("to").rstrip(".,!?")
            from_chain, to_chain = _chains(message, exclude=recipient)
            as_token = re.search(r"\bas\s+(?P<token>[A-Za-z][A-Za-z0-9]{1,9})\b", message)
            return Intent(
                action=IntentAction.TRANSFER,
                amount=_amount(transfer.group("amount")),
                from_token=transfer.group("from_token"),
                to_token=as_token.group("token") if as_token else None,
                to_address=recipient,
                from_chain=from_chain,
                to_chain=to_chain,
            )

        raise IntentParseError(
            "Sorry, I couldn't understand that request. Try something like "
            '"send 10 USDC to alice.eth on base".'
        )


__all__ = ["IntentParser", "RuleBasedIntentParser"]
