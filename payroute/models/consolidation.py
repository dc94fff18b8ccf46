"""Models for balance consolidation planning."""

from decimal import Decimal

from pydantic import BaseModel, Field

from payroute.models.intent import Intent
from payroute.models.route import RouteOption


class Balance(BaseModel):
    """A token balance held on one chain."""

    token: str
    chain: str
    amount: str = Field(description="Decimal amount in token units.")
    usd_value: str | None = Field(default=None, alias="usdValue")

    model_config = {"populate_by_name": True}

    @property
    def amount_decimal(self) -> Decimal:
        try:
            return Decimal(self.amount)
        except ArithmeticError:
            return Decimal(0)


class TargetConfig(BaseModel):
    """Asset and chain a wallet should be consolidated into."""

    preferred_token: str = Field(alias="preferredToken")
    preferred_chain: str = Field(alias="preferredChain")

    model_config = {"populate_by_name": True}


class ConsolidationOpportunity(BaseModel):
    """A held balance that does not match the consolidation target."""

    from_token: str = Field(alias="fromToken")
    from_chain: str = Field(alias="fromChain")
    amount: str
    to_token: str = Field(alias="toToken")
    to_chain: str = Field(alias="toChain")
    usd_value: str | None = Field(default=None, alias="usdValue")
    executable: bool = Field(
        default=True,
        description="Estimate: both legs are known tokens on their chains.",
    )

    model_config = {"populate_by_name": True}


class ConsolidationStep(BaseModel):
    """One planned conversion toward the target asset."""

    from_token: str = Field(alias="fromToken")
    from_chain: str = Field(alias="fromChain")
    to_token: str = Field(alias="toToken")
    to_chain: str = Field(alias="toChain")
    amount: str
    provider: str
    fee: str
    estimated_time: str = Field(alias="estimatedTime")
    executable: bool
    description: str
    route_id: str | None = Field(default=None, alias="routeId")
    intent: Intent | None = Field(
        default=None, description="Intent to post to /execute for this step."
    )
    # Selected route, returned separately in the response route list
    route: RouteOption | None = Field(default=None, exclude=True)

    model_config = {"populate_by_name": True}


class GoldConversion(BaseModel):
    """Conversion leg from the intermediate stable into a commodity token."""

    from_token: str = Field(alias="fromToken")
    to_token: str = Field(alias="toToken")
    chain: str
    stable_amount: str = Field(alias="stableAmount")
    spot_price: str = Field(alias="spotPrice")
    estimated_amount: str = Field(alias="estimatedAmount")
    settlement: str

    model_config = {"populate_by_name": True}


class ConsolidationPlan(BaseModel):
    """Ordered conversion steps plus aggregate savings."""

    steps: list[ConsolidationStep] = Field(default_factory=list)
    total_savings: str = Field(default="$0.00", alias="totalSavings")
    gold_conversion: GoldConversion | None = Field(default=None, alias="goldConversion")

    model_config = {"populate_by_name": True}

    @property
    def executable_steps(self) -> list[ConsolidationStep]:
        return [step for step in self.steps if step.executable]
