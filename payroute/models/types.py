"""Shared type definitions for payment routing models.

These types are used across intent, route and API models.
"""

from decimal import Decimal, InvalidOperation
from typing import Annotated, Any

from pydantic import BeforeValidator, Field


def validate_positive_decimal(value: Any) -> str:
    """Validate that a value is a positive decimal amount.

    Args:
        value: Value to validate (string, int or Decimal)

    Returns:
        The amount as a plain decimal string

    Raises:
        ValueError: If value is not a finite decimal greater than zero
    """
    if isinstance(value, bool):
        raise ValueError(f"Amount must be a decimal string, got {value!r}")

    if isinstance(value, int | Decimal):
        value = str(value)

    if not isinstance(value, str):
        raise ValueError(f"Amount must be a decimal string, got {type(value).__name__}")

    text = value.strip().replace(",", "")
    try:
        amount = Decimal(text)
    except InvalidOperation as err:
        raise ValueError(f"Amount must be a decimal string: '{value}'") from err

    if not amount.is_finite():
        raise ValueError(f"Amount must be finite: '{value}'")
    if amount <= 0:
        raise ValueError(f"Amount must be positive: '{value}'")

    return text


# Ethereum address (40 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# Positive decimal amount in human units (e.g. "10.5")
DecimalAmount = Annotated[
    str,
    BeforeValidator(validate_positive_decimal),
    Field(description="Positive decimal amount as string"),
]

# Arbitrary hex bytes
Bytes = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]*$")]


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an Ethereum address to lowercase.

    Args:
        address: An Ethereum address (with or without 0x prefix)
        validate: If True, raises ValueError for invalid addresses.

    Returns:
        Lowercase address with 0x prefix

    Raises:
        ValueError: If validate=True and address is not a valid Ethereum address
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a valid Ethereum address."""
    if not isinstance(address, str):
        return False
    if not address.startswith("0x"):
        return False
    if len(address) != 42:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def to_base_units(amount: str, decimals: int) -> int:
    """Convert a human decimal amount into integer base units (floored)."""
    return int(Decimal(amount) * (Decimal(10) ** decimals))


def from_base_units(amount: int | str, decimals: int) -> Decimal:
    """Convert integer base units into a human decimal amount."""
    return Decimal(int(amount)) / (Decimal(10) ** decimals)


def parse_usd(value: str | None) -> Decimal | None:
    """Extract the numeric part of a currency string ("$1.25" -> 1.25).

    Returns None when the string carries no parseable number.
    """
    if not value:
        return None
    digits = "".join(ch for ch in value if ch.isdigit() or ch == ".")
    if not digits:
        return None
    try:
        return Decimal(digits)
    except InvalidOperation:
        return None


def format_usd(amount: Decimal | float) -> str:
    """Render a USD amount with two decimals ("$0.12")."""
    return f"${Decimal(str(amount)).quantize(Decimal('0.01')):,}"
