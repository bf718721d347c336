"""Protocol constants for smart order routing.

Centralizes well-known addresses and numeric parameters.
"""

from decimal import Decimal

from sor.models.types import is_valid_address

# 18-decimal fixed-point unit (1e18)
ONE_18 = 10**18

# Number of decimals used for normalised price math
WAD_DECIMALS = 18


def _validate_token_address(name: str, address: str) -> str:
    """Validate and return a token address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# Sentinel address wallets use for the chain's native asset (ETH)
NATIVE_ASSET_ADDRESS = _validate_token_address(
    "native asset", "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"
)

# The vault represents the native asset as the zero address in batch swaps
ZERO_ADDRESS = _validate_token_address("zero", "0x0000000000000000000000000000000000000000")

# Well-known token addresses on mainnet (lowercase for consistency)
WETH = _validate_token_address("WETH", "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2")
STETH = _validate_token_address("stETH", "0xae7ab96520de3a18e5e111b5eaab095312d7fe84")
WSTETH = _validate_token_address("wstETH", "0x7f39c581f595b53c5cb19bd0b3f8da6c935e2ca0")
USDC = _validate_token_address("USDC", "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48")
DAI = _validate_token_address("DAI", "0x6b175474e89094c44da98b954eedeac495271d0f")

MAINNET_CHAIN_ID = 1

# Routing defaults (deployment-overridable, see SorConfig.from_env)
DEFAULT_GAS_PRICE = 100_000_000_000  # 100 gwei
DEFAULT_MAX_POOLS = 4

# Gas cost of a single pool hop, used to normalise route costs
SWAP_GAS_COST = 100_000

# Reported price impact never drops below this for a routed trade
MIN_PRICE_IMPACT = Decimal("0.0001")

# Inclusive threshold for the high price impact warning
HIGH_PRICE_IMPACT_THRESHOLD = Decimal("0.05")

# Significant digits kept in displayed amounts
DISPLAY_SIGNIFICANT_DIGITS = 6
