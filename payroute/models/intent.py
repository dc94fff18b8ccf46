"""Pydantic model for a normalized payment intent."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from payroute.models.types import DecimalAmount


class IntentAction(str, Enum):
    """What the user wants done with their funds."""

    TRANSFER = "transfer"
    SWAP = "swap"
    DEPOSIT = "deposit"
    YIELD = "yield"
    CONSOLIDATE = "consolidate"
    PAY_VIA_PAYWALL = "pay_via_paywall"

    @classmethod
    def parse(cls, value: str) -> "IntentAction":
        """Parse an action string, accepting legacy aliases."""
        key = value.strip().lower()
        return cls(ACTION_ALIASES.get(key, key))


# Older clients send the paywall action under its protocol name
ACTION_ALIASES = {"pay_x402": "pay_via_paywall", "x402": "pay_via_paywall"}


# Actions that move a concrete amount out of the sender's wallet
AMOUNT_ACTIONS = frozenset(
    {
        IntentAction.TRANSFER,
        IntentAction.SWAP,
        IntentAction.DEPOSIT,
        IntentAction.YIELD,
    }
)


class Intent(BaseModel):
    """A normalized payment request.

    Chains are optional on input; the aggregator fills them before the
    intent leaves it, so responses always carry concrete chains.
    """

    action: IntentAction
    amount: DecimalAmount | None = Field(
        default=None,
        description="Amount in source-token units, e.g. '10.5'.",
    )
    from_token: str | None = Field(default=None, alias="fromToken")
    to_token: str | None = Field(default=None, alias="toToken")
    from_chain: str | None = Field(default=None, alias="fromChain")
    to_chain: str | None = Field(default=None, alias="toChain")
    to_address: str | None = Field(default=None, alias="toAddress")
    vault_protocol: str | None = Field(default=None, alias="vaultProtocol")
    url: str | None = None

    model_config = {"populate_by_name": True}

    @field_validator("action", mode="before")
    @classmethod
    def _action_alias(cls, value: Any) -> Any:
        if isinstance(value, str):
            return IntentAction.parse(value)
        return value

    @field_validator("from_token", "to_token", mode="before")
    @classmethod
    def _upper_symbol(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().upper()
            return value or None
        return value

    @field_validator("from_chain", "to_chain", "vault_protocol", mode="before")
    @classmethod
    def _lower_key(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    @field_validator("to_address", "url", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @property
    def requires_amount(self) -> bool:
        return self.action in AMOUNT_ACTIONS
