"""Pydantic models for the HTTP request/response envelopes."""

from pydantic import BaseModel, Field

from payroute.models.consolidation import ConsolidationPlan
from payroute.models.intent import Intent
from payroute.models.route import RouteOption
from payroute.models.types import Address, Bytes


class ChatRequest(BaseModel):
    """Free-text payment request from a client."""

    message: str | None = None
    user_address: str | None = Field(default=None, alias="userAddress")
    slippage: float | None = Field(
        default=None, ge=0, le=1, description="Slippage as a fraction (0.005 = 0.5%)."
    )

    model_config = {"populate_by_name": True}


class EnsProfile(BaseModel):
    """Presentation metadata about the resolved recipient."""

    avatar: str | None = None
    description: str | None = None
    preferences: str | None = None


class AgentResponse(BaseModel):
    """Natural-language answer plus whatever structured data is available.

    `routes` is omitted (not empty) when routing was never attempted, e.g.
    when the recipient could not be resolved.
    """

    content: str
    intent: Intent
    routes: list[RouteOption] | None = None
    resolved_address: str | None = Field(default=None, alias="resolvedAddress")
    ens_profile: EnsProfile | None = Field(default=None, alias="ensProfile")
    consolidation: ConsolidationPlan | None = None

    model_config = {"populate_by_name": True}


class ExecuteRequest(BaseModel):
    """Request to build the next unsigned transaction for a selected route."""

    route_id: str | None = Field(default=None, alias="routeId")
    from_address: str | None = Field(default=None, alias="fromAddress")
    intent: Intent | None = None
    slippage: float | None = Field(default=None, ge=0, le=1)
    ens_name: str | None = Field(default=None, alias="ensName")

    model_config = {"populate_by_name": True}


class UnsignedTransaction(BaseModel):
    """Transaction payload for client-side signing.

    When `provider` starts with "Approval: " the client must send this
    transaction and call /execute again for the next step.
    """

    to: Address
    data: Bytes
    value: str = "0"
    chain_id: int = Field(alias="chainId")
    provider: str | None = None
    description: str | None = None

    model_config = {"populate_by_name": True}

    @property
    def is_approval(self) -> bool:
        return bool(self.provider and self.provider.startswith(APPROVAL_PREFIX))


APPROVAL_PREFIX = "Approval: "


class ErrorResponse(BaseModel):
    """Error envelope returned with 4xx/5xx statuses."""

    error: str
