"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Token addresses, pool ids and decimals
- factories: Pool, route and token factory functions
"""

from tests.helpers.constants import (
    DAI,
    ETH,
    POOL_WETH_DAI,
    POOL_WETH_USDC,
    POOL_WETH_USDC_DEEP,
    POOL_WSTETH_WETH,
    STETH,
    TOKEN_DECIMALS,
    USDC,
    WBTC,
    WETH,
    WSTETH,
)
from tests.helpers.factories import make_pool, make_route, make_subgraph_pool, make_token

__all__ = [
    # Constants
    "ETH",
    "WETH",
    "USDC",
    "DAI",
    "WBTC",
    "STETH",
    "WSTETH",
    "POOL_WETH_USDC",
    "POOL_WETH_USDC_DEEP",
    "POOL_WETH_DAI",
    "POOL_WSTETH_WETH",
    "TOKEN_DECIMALS",
    # Factories
    "make_pool",
    "make_route",
    "make_subgraph_pool",
    "make_token",
]
