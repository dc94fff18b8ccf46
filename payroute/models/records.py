"""Persistent-ish records: payment receipts and invoices."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from payroute.models.types import DecimalAmount


class ReceiptRequest(BaseModel):
    """Details of a confirmed payment to log."""

    tx_hash: str = Field(alias="txHash", min_length=1)
    amount: str = Field(min_length=1)
    token: str = Field(min_length=1)
    chain: str = Field(min_length=1)
    recipient: str = Field(min_length=1)
    from_address: str = Field(alias="from", min_length=1)

    model_config = {"populate_by_name": True}


class Receipt(BaseModel):
    """A stored receipt, keyed by lowercase transaction hash."""

    tx_hash: str = Field(alias="txHash")
    amount: str
    token: str
    chain: str
    recipient: str
    from_address: str = Field(alias="from")
    text_records: dict[str, str] = Field(alias="textRecords")
    created_at: datetime = Field(alias="createdAt")

    model_config = {"populate_by_name": True}


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    EXPIRED = "expired"


class InvoiceCreate(BaseModel):
    """Request body for creating an invoice."""

    receiver_address: str = Field(alias="receiverAddress", min_length=1)
    receiver_ens: str | None = Field(default=None, alias="receiverEns")
    amount: DecimalAmount
    token: str = "USDC"
    memo: str | None = None
    expires_in_hours: float | None = Field(default=None, alias="expiresInHours", gt=0)

    model_config = {"populate_by_name": True}


class InvoicePayment(BaseModel):
    """Request body for marking an invoice as paid."""

    id: str
    status: InvoiceStatus
    tx_hash: str | None = Field(default=None, alias="txHash")

    model_config = {"populate_by_name": True}


class Invoice(BaseModel):
    """A payment request issued by a receiver."""

    id: str
    receiver_address: str = Field(alias="receiverAddress")
    receiver_ens: str | None = Field(default=None, alias="receiverEns")
    amount: str
    token: str = "USDC"
    memo: str | None = None
    status: InvoiceStatus = InvoiceStatus.PENDING
    created_at: datetime = Field(alias="createdAt")
    paid_at: datetime | None = Field(default=None, alias="paidAt")
    paid_tx_hash: str | None = Field(default=None, alias="paidTxHash")
    expires_at: datetime | None = Field(default=None, alias="expiresAt")

    model_config = {"populate_by_name": True}


class InvoiceRecord(BaseModel):
    """Invoice fields stored as JSON in a flowfi.invoice.<id> text record."""

    id: str | None = None
    amount: str | None = None
    token: str = "USDC"
    memo: str | None = None
    receiver: str | None = None
    created_at: str | None = Field(default=None, alias="createdAt")

    model_config = {"populate_by_name": True}


class EnsInvoiceRequest(BaseModel):
    """Request body for writing an invoice to the receiver's name."""

    ens_name: str | None = Field(default=None, alias="ensName")
    invoice: InvoiceRecord | None = None

    model_config = {"populate_by_name": True}
