"""Chain, token and contract constants for the payment router.

Centralizes chain ids, well-known token addresses per chain and the contracts
the execution builder targets.
"""

from decimal import Decimal

from payroute.models.types import is_valid_address

# Canonical chain used whenever an intent leaves its chain unspecified
DEFAULT_CHAIN = "ethereum"

# Chain name -> EVM chain id (LI.FI uses the same numeric ids)
CHAIN_IDS: dict[str, int] = {
    "ethereum": 1,
    "optimism": 10,
    "polygon": 137,
    "base": 8453,
    "arbitrum": 42161,
}

# Common aliases users type for chains
CHAIN_ALIASES: dict[str, str] = {
    "eth": "ethereum",
    "mainnet": "ethereum",
    "arb": "arbitrum",
    "arbitrum-one": "arbitrum",
    "op": "optimism",
    "matic": "polygon",
    "base-mainnet": "base",
}

# LI.FI and most wallets use the zero address for the native gas token
NATIVE_TOKEN_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_ADDRESS = NATIVE_TOKEN_ADDRESS


def _validate_token_address(name: str, address: str) -> str:
    """Validate and return a token address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address.lower()


TOKEN_DECIMALS: dict[str, int] = {
    "ETH": 18,
    "WETH": 18,
    "USDC": 6,
    "USDT": 6,
    "DAI": 18,
    "ARB": 18,
    "OP": 18,
    "AERO": 18,
    "POL": 18,
    "XAUT": 6,
    "PAXG": 18,
}

# Token symbol -> chain name -> address
# All addresses are validated at import time to catch typos early
TOKEN_ADDRESSES: dict[str, dict[str, str]] = {
    "ETH": {
        "ethereum": NATIVE_TOKEN_ADDRESS,
        "base": NATIVE_TOKEN_ADDRESS,
        "arbitrum": NATIVE_TOKEN_ADDRESS,
        "optimism": NATIVE_TOKEN_ADDRESS,
    },
    "WETH": {
        "ethereum": _validate_token_address("WETH", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"),
        "base": _validate_token_address("WETH", "0x4200000000000000000000000000000000000006"),
        "optimism": _validate_token_address("WETH", "0x4200000000000000000000000000000000000006"),
        "arbitrum": _validate_token_address("WETH", "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1"),
        "polygon": _validate_token_address("WETH", "0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619"),
    },
    "USDC": {
        "ethereum": _validate_token_address("USDC", "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"),
        "base": _validate_token_address("USDC", "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"),
        "arbitrum": _validate_token_address("USDC", "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"),
        "optimism": _validate_token_address("USDC", "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85"),
        "polygon": _validate_token_address("USDC", "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359"),
    },
    "USDT": {
        "ethereum": _validate_token_address("USDT", "0xdAC17F958D2ee523a2206206994597C13D831ec7"),
        "base": _validate_token_address("USDT", "0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2"),
        "arbitrum": _validate_token_address("USDT", "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9"),
        "optimism": _validate_token_address("USDT", "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58"),
        "polygon": _validate_token_address("USDT", "0xc2132D05D31c914a87C6611C10748AEb04B58e8F"),
    },
    "DAI": {
        "ethereum": _validate_token_address("DAI", "0x6B175474E89094C44Da98b954EedeAC495271d0F"),
        "base": _validate_token_address("DAI", "0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb"),
        "arbitrum": _validate_token_address("DAI", "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1"),
        "optimism": _validate_token_address("DAI", "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1"),
        "polygon": _validate_token_address("DAI", "0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063"),
    },
    "ARB": {
        "arbitrum": _validate_token_address("ARB", "0x912CE59144191C1204E64559FE8253a0e49E6548"),
    },
    "OP": {
        "optimism": _validate_token_address("OP", "0x4200000000000000000000000000000000000042"),
    },
    "AERO": {
        "base": _validate_token_address("AERO", "0x940181a94A35A4569E4529A3CDfB74e38FD98631"),
    },
    "POL": {
        "polygon": NATIVE_TOKEN_ADDRESS,
    },
    "XAUT": {
        "ethereum": _validate_token_address("XAUT", "0x68749665FF8D2d112Fa859AA293F07A622782F38"),
    },
    "PAXG": {
        "ethereum": _validate_token_address("PAXG", "0x45804880De22913dAFE09f4980848ECE6EcbAf78"),
    },
}

# Chain where a token is natively issued; used when the destination chain
# must be inferred for a token the default chain does not carry
NATIVE_CHAINS: dict[str, str] = {
    "ARB": "arbitrum",
    "OP": "optimism",
    "AERO": "base",
    "POL": "polygon",
    "XAUT": "ethereum",
    "PAXG": "ethereum",
}

# Stable-value assets eligible for the same-chain hook route
STABLE_TOKENS = frozenset({"USDC", "USDT", "DAI"})

# Commodity-backed tokens that get a dedicated conversion leg in consolidation
COMMODITY_TOKENS = frozenset({"XAUT", "PAXG"})

# Stable asset consolidation routes through before the commodity leg
INTERMEDIATE_STABLE = "USDC"

# Hook swap fee: 1 basis point
HOOK_FEE_BPS = 1

# Vault deposits always settle as USDC on Base
VAULT_CHAIN = "base"
VAULT_ASSET = "USDC"

# Protocol key -> (display name, ERC-4626 vault address on Base)
VAULT_PROTOCOLS: dict[str, tuple[str, str]] = {
    "aave": (
        "Aave",
        _validate_token_address("Aave vault", "0x4e65fE4DbA92790696d040ac24Aa414708F5c0AB"),
    ),
    "morpho": (
        "Morpho",
        _validate_token_address("Morpho vault", "0x7BfA7C4f149E7415b73bdeDfe609237e29CBF34A"),
    ),
}

# YieldRouter on Base; LI.FI delivers USDC then calls depositToYield
YIELD_ROUTER_ADDRESS = _validate_token_address(
    "YieldRouter", "0x0B880127FFb09727468159f3883c76Fd1B1c59A2"
)

# Gas limit forwarded to LI.FI for the destination deposit call
VAULT_CALL_GAS_LIMIT = "300000"

# Default slippage (fraction) when neither caller nor recipient provides one
DEFAULT_SLIPPAGE = 0.005

# Baseline fees a user would pay without route optimisation (consolidation savings)
STANDARD_SWAP_FEE_USD = Decimal("2.50")
STANDARD_BRIDGE_FEE_USD = Decimal("8.00")

# ENS text records read for recipient preferences
TEXT_RECORD_CHAIN = "com.payagent.chain"
TEXT_RECORD_TOKEN = "com.payagent.token"
TEXT_RECORD_SLIPPAGE = "com.payagent.slippage"
TEXT_RECORD_MAX_FEE = "com.payagent.maxFee"
TEXT_RECORD_AVATAR = "avatar"
TEXT_RECORD_DESCRIPTION = "description"
TEXT_RECORD_VAULT = "yieldroute.vault"
TEXT_RECORD_ALLOCATIONS = "yieldroute.allocations"

# Invoices written to a receiver's name live under flowfi.invoice.<id>
TEXT_RECORD_INVOICE_PREFIX = "flowfi.invoice."

PROFILE_TEXT_RECORDS = (
    TEXT_RECORD_CHAIN,
    TEXT_RECORD_TOKEN,
    TEXT_RECORD_SLIPPAGE,
    TEXT_RECORD_MAX_FEE,
    TEXT_RECORD_AVATAR,
    TEXT_RECORD_DESCRIPTION,
    TEXT_RECORD_VAULT,
    TEXT_RECORD_ALLOCATIONS,
)

# Special route id that writes preferences instead of moving funds
SET_PREFERENCE_ROUTE_ID = "set-preference"


def normalize_chain(chain: str | None) -> str | None:
    """Map a user-supplied chain name onto a canonical chain key."""
    if chain is None:
        return None
    key = chain.strip().lower()
    return CHAIN_ALIASES.get(key, key)


def get_chain_id(chain: str) -> int | None:
    """Return the chain id for a chain name, or None if unsupported."""
    return CHAIN_IDS.get(normalize_chain(chain) or "")


def get_token_address(symbol: str, chain: str) -> str | None:
    """Return the token address on a chain, or None if the pair is unknown."""
    return TOKEN_ADDRESSES.get(symbol.upper(), {}).get(normalize_chain(chain) or "")


def get_token_decimals(symbol: str) -> int:
    """Return the token's decimals (18 for unknown tokens)."""
    return TOKEN_DECIMALS.get(symbol.upper(), 18)


def get_token_symbol(address: str, chain: str) -> str | None:
    """Reverse lookup of a token symbol from its address on a chain."""
    chain_key = normalize_chain(chain) or ""
    address = address.lower()
    for symbol, per_chain in TOKEN_ADDRESSES.items():
        if per_chain.get(chain_key) == address:
            return symbol
    return None


def is_native_token(address: str) -> bool:
    return address.lower() == NATIVE_TOKEN_ADDRESS


def display_chain(chain: str) -> str:
    """Human-readable chain name ("base" -> "Base")."""
    return chain[:1].upper() + chain[1:]
