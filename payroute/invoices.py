"""In-memory invoice store.

Invoices live for the lifetime of the process. Pending invoices past their
expiry are marked expired lazily, when read.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog

from payroute.errors import ClientInputError, NotFoundError
from payroute.models.records import Invoice, InvoiceCreate, InvoiceStatus

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InvoiceStore:
    """Creates, reads and settles invoices."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self.clock = clock
        self._invoices: dict[str, Invoice] = {}

    def create(self, request: InvoiceCreate) -> Invoice:
        now = self.clock()
        invoice_id = uuid.uuid4().hex[:8]
        while invoice_id in self._invoices:
            invoice_id = uuid.uuid4().hex[:8]

        expires_at = None
        if request.expires_in_hours:
            expires_at = now + timedelta(hours=request.expires_in_hours)

        invoice = Invoice(
            id=invoice_id,
            receiver_address=request.receiver_address,
            receiver_ens=request.receiver_ens,
            amount=request.amount,
            token=request.token or "USDC",
            memo=request.memo,
            created_at=now,
            expires_at=expires_at,
        )
        self._invoices[invoice_id] = invoice
        logger.info("invoice_created", invoice_id=invoice_id, amount=invoice.amount)
        return invoice

    def get(self, invoice_id: str) -> Invoice:
        """Return an invoice, expiring it first if its deadline has passed.

        Raises:
            NotFoundError: If no invoice has this id
        """
        invoice = self._invoices.get(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice not found")
        if (
            invoice.status == InvoiceStatus.PENDING
            and invoice.expires_at is not None
            and invoice.expires_at < self.clock()
        ):
            invoice.status = InvoiceStatus.EXPIRED
        return invoice

    def mark_paid(self, invoice_id: str, tx_hash: str | None = None) -> Invoice:
        """Settle an invoice.

        Raises:
            NotFoundError: If no invoice has this id
            ClientInputError: If the invoice was already paid
        """
        invoice = self.get(invoice_id)
        if invoice.status == InvoiceStatus.PAID:
            raise ClientInputError("Invoice already paid")
        invoice.status = InvoiceStatus.PAID
        invoice.paid_at = self.clock()
        invoice.paid_tx_hash = tx_hash
        logger.info("invoice_paid", invoice_id=invoice_id, tx_hash=tx_hash)
        return invoice

    def __len__(self) -> int:
        return len(self._invoices)


__all__ = ["InvoiceStore"]
