"""Payment receipts: ENS receipt subnames and a JSON-file receipt log.

Subname creation itself needs a registrar interaction, which is out of scope;
these helpers produce the name and the text records that would be set on it.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import structlog

from payroute.models import Receipt

logger = structlog.get_logger()

DEFAULT_RECEIPT_PARENT = "payments.payagent.eth"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def generate_receipt_subname(tx_hash: str, parent: str = DEFAULT_RECEIPT_PARENT) -> str:
    """Deterministic receipt subname ("tx-0xabc.payments.payagent.eth")."""
    return f"tx-{tx_hash.lower()}.{parent}"


def build_receipt_text_records(
    tx_hash: str,
    amount: str,
    token: str,
    chain: str,
    recipient: str,
    timestamp: datetime | None = None,
) -> dict[str, str]:
    """Text records describing a payment, keyed by ENS text-record key."""
    timestamp = timestamp or _utcnow()
    return {
        "com.payagent.tx": tx_hash,
        "com.payagent.amount": amount,
        "com.payagent.token": token,
        "com.payagent.chain": chain,
        "com.payagent.recipient": recipient,
        "com.payagent.timestamp": timestamp.isoformat(),
    }


class ReceiptLog:
    """Receipts persisted to a single JSON file keyed by lowercase tx hash.

    The file is read on every access; an unreadable or missing file is
    treated as empty.
    """

    def __init__(self, path: Path, clock: Callable[[], datetime] = _utcnow):
        self.path = path
        self.clock = clock

    def _read(self) -> dict[str, dict]:
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}

    def _write(self, entries: dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")

    def store(
        self,
        tx_hash: str,
        amount: str,
        token: str,
        chain: str,
        recipient: str,
        from_address: str,
    ) -> Receipt:
        """Record a payment and return the stored receipt.

        Raises:
            OSError: If the store file cannot be written
        """
        now = self.clock()
        receipt = Receipt(
            tx_hash=tx_hash,
            amount=amount,
            token=token,
            chain=chain,
            recipient=recipient,
            from_address=from_address.lower(),
            text_records=build_receipt_text_records(
                tx_hash, amount, token, chain, recipient, timestamp=now
            ),
            created_at=now,
        )
        entries = self._read()
        entries[tx_hash.lower()] = receipt.model_dump(mode="json", by_alias=True)
        self._write(entries)
        logger.info("receipt_stored", tx_hash=tx_hash.lower(), recipient=recipient)
        return receipt

    def get(self, tx_hash: str) -> Receipt | None:
        entry = self._read().get(tx_hash.lower())
        return Receipt.model_validate(entry) if entry else None

    def list_for_recipient(self, recipient: str) -> list[Receipt]:
        recipient = recipient.lower()
        return [
            Receipt.model_validate(entry)
            for entry in self._read().values()
            if str(entry.get("recipient", "")).lower() == recipient
        ]


__all__ = [
    "DEFAULT_RECEIPT_PARENT",
    "ReceiptLog",
    "build_receipt_text_records",
    "generate_receipt_subname",
]
