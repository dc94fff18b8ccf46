"""Tests for the in-memory invoice store."""

from datetime import UTC, datetime, timedelta

import pytest

from payroute.errors import ClientInputError, NotFoundError
from payroute.invoices import InvoiceStore
from payroute.models import InvoiceStatus
from payroute.models.records import InvoiceCreate
from tests.helpers import ALICE


class FakeClock:
    def __init__(self):
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InvoiceStore:
    return InvoiceStore(clock=clock)


def invoice_request(**overrides) -> InvoiceCreate:
    data = {"receiverAddress": ALICE, "amount": "25", "memo": "Design work"}
    data.update(overrides)
    return InvoiceCreate.model_validate(data)


class TestCreate:
    """Tests for invoice creation."""

    def test_new_invoice_is_pending(self, store, clock):
        invoice = store.create(invoice_request())

        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.token == "USDC"
        assert invoice.created_at == clock.now
        assert invoice.expires_at is None
        assert len(invoice.id) == 8
        assert store.get(invoice.id) is invoice

    def test_expiry_from_hours(self, store, clock):
        invoice = store.create(invoice_request(expiresInHours=24))
        assert invoice.expires_at == clock.now + timedelta(hours=24)

    def test_ids_are_unique(self, store):
        ids = {store.create(invoice_request()).id for _ in range(20)}
        assert len(ids) == 20
        assert len(store) == 20

    def test_amount_must_be_positive(self):
        with pytest.raises(ValueError):
            invoice_request(amount="0")

    def test_serializes_with_camel_case(self, store):
        dumped = store.create(invoice_request(receiverEns="alice.eth")).model_dump(
            by_alias=True, mode="json"
        )
        assert dumped["receiverAddress"] == ALICE
        assert dumped["receiverEns"] == "alice.eth"
        assert dumped["status"] == "pending"


class TestGet:
    def test_unknown_id(self, store):
        with pytest.raises(NotFoundError, match="Invoice not found"):
            store.get("missing")

    def test_pending_invoice_expires_lazily(self, store, clock):
        invoice = store.create(invoice_request(expiresInHours=1))

        clock.now += timedelta(minutes=59)
        assert store.get(invoice.id).status == InvoiceStatus.PENDING

        clock.now += timedelta(minutes=2)
        assert store.get(invoice.id).status == InvoiceStatus.EXPIRED


class TestMarkPaid:
    """Tests for settling invoices."""

    def test_records_payment(self, store, clock):
        invoice = store.create(invoice_request())
        clock.now += timedelta(hours=1)

        paid = store.mark_paid(invoice.id, "0xabc")

        assert paid.status == InvoiceStatus.PAID
        assert paid.paid_at == clock.now
        assert paid.paid_tx_hash == "0xabc"

    def test_cannot_pay_twice(self, store):
        invoice = store.create(invoice_request())
        store.mark_paid(invoice.id)

        with pytest.raises(ClientInputError, match="already paid"):
            store.mark_paid(invoice.id)

    def test_paid_invoice_does_not_expire(self, store, clock):
        invoice = store.create(invoice_request(expiresInHours=1))
        store.mark_paid(invoice.id)

        clock.now += timedelta(days=2)
        assert store.get(invoice.id).status == InvoiceStatus.PAID

    def test_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            store.mark_paid("missing")
