"""Pydantic models for payment routing data structures."""

from payroute.models.api import (
    AgentResponse,
    ChatRequest,
    EnsProfile,
    ErrorResponse,
    ExecuteRequest,
    UnsignedTransaction,
)
from payroute.models.consolidation import (
    Balance,
    ConsolidationOpportunity,
    ConsolidationPlan,
    ConsolidationStep,
    GoldConversion,
    TargetConfig,
)
from payroute.models.intent import Intent, IntentAction
from payroute.models.profile import RecipientProfile
from payroute.models.records import Invoice, InvoiceStatus, Receipt
from payroute.models.route import QuoteResult, RouteOption, RouteType
from payroute.models.types import Address, Bytes, DecimalAmount

__all__ = [
    # Types
    "Address",
    "Bytes",
    "DecimalAmount",
    # Intent and recipient
    "Intent",
    "IntentAction",
    "RecipientProfile",
    # Routes
    "QuoteResult",
    "RouteOption",
    "RouteType",
    # Consolidation
    "Balance",
    "ConsolidationOpportunity",
    "ConsolidationPlan",
    "ConsolidationStep",
    "GoldConversion",
    "TargetConfig",
    # API envelopes
    "AgentResponse",
    "ChatRequest",
    "EnsProfile",
    "ErrorResponse",
    "ExecuteRequest",
    "UnsignedTransaction",
    # Records
    "Invoice",
    "InvoiceStatus",
    "Receipt",
]
