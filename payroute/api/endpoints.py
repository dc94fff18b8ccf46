"""API endpoints for the payment router."""

import json
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from payroute.api.deps import AppContainer, get_container
from payroute.errors import (
    ClientInputError,
    NotFoundError,
    PayRouteError,
    RateLimitedError,
    UpstreamError,
)
from payroute.identity.preferences import (
    build_set_invoice_transaction,
    invoice_record_key,
    lookup_resolver,
    read_invoice_record,
)
from payroute.identity.receipts import generate_receipt_subname
from payroute.models import (
    AgentResponse,
    ChatRequest,
    ExecuteRequest,
    Invoice,
    InvoiceStatus,
    Receipt,
    UnsignedTransaction,
)
from payroute.models.records import (
    EnsInvoiceRequest,
    InvoiceCreate,
    InvoicePayment,
    ReceiptRequest,
)
from payroute.ratelimit import client_key

logger = structlog.get_logger()

router = APIRouter()

RATE_LIMITED_MESSAGE = "Too many requests. Please wait before trying again."

# Demo paywall served by /x402-demo
DEMO_PAYMENT = {
    "amount": "0.50",
    "token": "USDC",
    "chain": "base",
    "recipient": "0x742d35Cc6634C0532925a3b844Bc9e7595f2bD1e",
}


def request_base_url(request: Request) -> str:
    """Origin the client used, honouring X-Forwarded-Proto from a proxy."""
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}"


@router.post("/chat", response_model_exclude_none=True)
async def chat(
    body: ChatRequest,
    request: Request,
    container: AppContainer = Depends(get_container),
) -> AgentResponse:
    """Turn a free-text message into ranked payment routes.

    Error Handling:
        - Rate limited client: 429
        - Missing or unparseable message: 400
        - Unexpected exception: logged, 500 with a generic message
    """
    key = client_key(
        request.headers.get("x-forwarded-for"),
        request.client.host if request.client else None,
    )
    if container.rate_limiter.is_limited(key):
        logger.warning("rate_limited", client=key)
        raise RateLimitedError(RATE_LIMITED_MESSAGE)

    if not body.message or not body.message.strip():
        raise ClientInputError("Message is required")

    intent = container.parser.parse(body.message)
    try:
        return await container.aggregator.handle(
            intent,
            user_address=body.user_address,
            slippage=body.slippage,
            base_url=request_base_url(request),
        )
    except PayRouteError:
        raise
    except Exception as e:
        logger.exception("chat_failed", action=intent.action.value)
        raise PayRouteError("Failed to process message") from e


@router.post("/execute", response_model_exclude_none=True)
async def execute(
    body: ExecuteRequest,
    request: Request,
    container: AppContainer = Depends(get_container),
) -> UnsignedTransaction:
    """Build the next unsigned transaction for the selected route.

    When the returned transaction is an approval, the client signs it and
    calls /execute again with the same body.
    """
    try:
        return await container.builder.build(
            body.intent,
            body.from_address,
            body.route_id,
            body.slippage,
            ens_name=body.ens_name,
            base_url=request_base_url(request),
        )
    except PayRouteError:
        raise
    except Exception as e:
        logger.exception("execute_failed", route_id=body.route_id)
        raise PayRouteError("Failed to prepare transaction") from e


@router.post("/receipts")
async def create_receipt(
    body: ReceiptRequest,
    container: AppContainer = Depends(get_container),
) -> dict[str, str]:
    """Log a confirmed payment and return its receipt subname.

    Storage is best-effort; a failed write never fails the response.
    """
    try:
        container.receipts.store(
            tx_hash=body.tx_hash,
            amount=body.amount,
            token=body.token,
            chain=body.chain,
            recipient=body.recipient,
            from_address=body.from_address,
        )
    except OSError as e:
        logger.warning("receipt_store_failed", tx_hash=body.tx_hash, error=str(e))
    return {"subname": generate_receipt_subname(body.tx_hash)}


@router.get("/receipts")
async def get_receipts(
    tx_hash: str | None = Query(default=None, alias="txHash"),
    recipient: str | None = None,
    container: AppContainer = Depends(get_container),
) -> Receipt | list[Receipt]:
    """Look up one receipt by ?txHash= or all receipts for ?recipient=."""
    if tx_hash:
        receipt = container.receipts.get(tx_hash)
        if receipt is None:
            raise NotFoundError("Receipt not found")
        return receipt
    if recipient:
        return container.receipts.list_for_recipient(recipient)
    raise ClientInputError("Missing txHash or recipient")


@router.get("/invoices")
async def get_invoice(
    id: str | None = None,
    container: AppContainer = Depends(get_container),
) -> Invoice:
    if not id:
        raise ClientInputError("Missing invoice ID")
    return container.invoices.get(id)


@router.post("/invoices")
async def create_invoice(
    body: InvoiceCreate,
    container: AppContainer = Depends(get_container),
) -> Invoice:
    return container.invoices.create(body)


@router.patch("/invoices")
async def update_invoice(
    body: InvoicePayment,
    container: AppContainer = Depends(get_container),
) -> Invoice:
    """Mark an invoice as paid; "paid" is the only supported status."""
    if body.status != InvoiceStatus.PAID:
        raise ClientInputError('Invalid status (only "paid" supported)')
    return container.invoices.mark_paid(body.id, body.tx_hash)


@router.post("/invoices/ens")
async def store_invoice_in_ens(
    body: EnsInvoiceRequest,
    container: AppContainer = Depends(get_container),
) -> dict[str, Any]:
    """Build the transaction that stores an invoice in the receiver's name."""
    invoice = body.invoice
    if not body.ens_name or invoice is None or not invoice.id or not invoice.amount:
        raise ClientInputError("Missing required fields: ensName, invoice.id, invoice.amount")

    resolver_address = await lookup_resolver(container.identity, body.ens_name)
    tx = build_set_invoice_transaction(body.ens_name, invoice, resolver_address)
    return {
        **tx.model_dump(by_alias=True, exclude_none=True, mode="json"),
        "message": f"Store invoice {invoice.id} in ENS record: {invoice_record_key(invoice.id)}",
    }


@router.get("/invoices/ens")
async def read_invoice_from_ens(
    ens_name: str | None = Query(default=None, alias="ensName"),
    id: str | None = None,
    container: AppContainer = Depends(get_container),
) -> dict[str, Any]:
    """Read an invoice back from the receiver's text records."""
    if not ens_name or not id:
        raise ClientInputError("Missing required params: ensName, id")

    try:
        record = await read_invoice_record(container.identity, ens_name, id)
    except Exception as e:
        logger.warning("invoice_record_read_failed", name=ens_name, error=str(e))
        raise UpstreamError("Failed to read from ENS") from e
    if record is None:
        raise NotFoundError("Invoice not found in ENS")

    return {
        **record.model_dump(by_alias=True, exclude_none=True),
        "ensName": ens_name,
        "invoiceId": id,
        "recordKey": invoice_record_key(id),
        "verified": True,
    }


@router.get("/x402-demo")
async def x402_demo(request: Request) -> JSONResponse:
    """Demo paywall: 402 with a payment descriptor until a proof header is sent."""
    if not request.headers.get("x-payment-proof"):
        return JSONResponse(
            status_code=402,
            content={"message": "Payment Required", "payment": DEMO_PAYMENT},
            headers={"X-Payment": json.dumps(DEMO_PAYMENT)},
        )

    return JSONResponse(
        content={
            "message": "Access granted!",
            "data": {
                "title": "Premium DeFi Analytics",
                "content": (
                    "Top yielding stablecoin pools: Aave USDC (4.2% APY), "
                    "Morpho USDT (5.1% APY), Compound DAI (3.8% APY)"
                ),
                "timestamp": datetime.now(UTC).isoformat(),
            },
        }
    )


__all__ = ["router", "request_base_url"]
