"""Recipient profile resolved from the identity registry."""

from decimal import Decimal, InvalidOperation

from pydantic import BaseModel, Field


def _positive_decimal(value: str | None) -> Decimal | None:
    if not value:
        return None
    try:
        parsed = Decimal(value.strip().rstrip("%").lstrip("$"))
    except InvalidOperation:
        return None
    if not parsed.is_finite() or parsed <= 0:
        return None
    return parsed


class RecipientProfile(BaseModel):
    """Resolved identity plus declared payment preferences.

    `address is None` means the identifier could not be resolved. Every
    preference is independently optional; callers choose their own defaults.
    Profiles are fetched fresh per request and never cached.
    """

    address: str | None = None
    preferred_chain: str | None = Field(default=None, alias="preferredChain")
    preferred_token: str | None = Field(default=None, alias="preferredToken")
    preferred_slippage: str | None = Field(
        default=None,
        alias="preferredSlippage",
        description="Slippage tolerance in percent, e.g. '0.5' for 0.5%.",
    )
    max_fee: str | None = Field(
        default=None, alias="maxFee", description="Max acceptable fee in USD."
    )
    avatar: str | None = None
    description: str | None = None
    vault: str | None = Field(default=None, description="Recipient's ERC-4626 vault.")
    allocations: str | None = Field(
        default=None,
        description="Deposit split across vaults, e.g. 'aave:60,morpho:40'.",
    )

    model_config = {"populate_by_name": True}

    @classmethod
    def unresolved(cls) -> "RecipientProfile":
        """Profile for an identifier that could not be resolved."""
        return cls(address=None)

    @property
    def is_resolved(self) -> bool:
        return self.address is not None

    @property
    def slippage_fraction(self) -> float | None:
        """Preferred slippage as a fraction ("0.5" percent -> 0.005)."""
        percent = _positive_decimal(self.preferred_slippage)
        if percent is None:
            return None
        return float(percent / 100)

    @property
    def max_fee_usd(self) -> Decimal | None:
        """Max fee cap in USD, or None when absent or not a positive number."""
        return _positive_decimal(self.max_fee)

    @property
    def vault_allocations(self) -> list[tuple[str, int]] | None:
        """Parsed allocations as (vault key, percent) pairs.

        None unless every entry is key:integer-percent, keys are unique and
        the percentages add up to exactly 100.
        """
        if not self.allocations:
            return None
        pairs: list[tuple[str, int]] = []
        for entry in self.allocations.split(","):
            key, sep, percent = entry.partition(":")
            key, percent = key.strip().lower(), percent.strip()
            if not sep or not key or not percent.isdigit():
                return None
            pairs.append((key, int(percent)))
        keys = [key for key, _ in pairs]
        if len(set(keys)) != len(keys) or sum(p for _, p in pairs) != 100:
            return None
        return pairs

    @property
    def has_preferences(self) -> bool:
        return any(
            (self.preferred_chain, self.preferred_token, self.preferred_slippage, self.max_fee)
        )

    @property
    def preference_summary(self) -> str | None:
        """Human-readable preferences, e.g. 'USDC, on base, max fee $1.00'."""
        parts: list[str] = []
        if self.preferred_token:
            parts.append(self.preferred_token)
        if self.preferred_chain:
            parts.append(f"on {self.preferred_chain}")
        if self.preferred_slippage:
            parts.append(f"slippage ≤{self.preferred_slippage}%")
        if self.max_fee:
            parts.append(f"max fee ${self.max_fee}")
        return ", ".join(parts) if parts else None
