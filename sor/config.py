"""Configuration for smart order routing."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal

from sor.constants import (
    DEFAULT_GAS_PRICE,
    DEFAULT_MAX_POOLS,
    DISPLAY_SIGNIFICANT_DIGITS,
    HIGH_PRICE_IMPACT_THRESHOLD,
    MAINNET_CHAIN_ID,
    MIN_PRICE_IMPACT,
    NATIVE_ASSET_ADDRESS,
    STETH,
    SWAP_GAS_COST,
    WETH,
    WSTETH,
)
from sor.models.types import is_same_address


@dataclass(frozen=True)
class SorConfig:
    """Centralized configuration for quoting and routing.

    Attributes:
        gas_price: Gas price estimate in wei used for route cost normalisation
        max_pools: Maximum number of pools a route may touch
        swap_gas_cost: Gas cost per pool hop
        min_price_impact: Floor for the reported price impact of a routed trade
        high_price_impact_threshold: Impact at or above this raises a warning
        display_significant_digits: Significant digits kept in displayed amounts
        requote_on_pool_refresh: Re-run the current quote once pools are loaded
    """

    gas_price: int = DEFAULT_GAS_PRICE
    max_pools: int = DEFAULT_MAX_POOLS
    swap_gas_cost: int = SWAP_GAS_COST
    min_price_impact: Decimal = MIN_PRICE_IMPACT
    high_price_impact_threshold: Decimal = HIGH_PRICE_IMPACT_THRESHOLD
    display_significant_digits: int = DISPLAY_SIGNIFICANT_DIGITS
    requote_on_pool_refresh: bool = True

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> SorConfig:
        """Build a config, letting SOR_GAS_PRICE and SOR_MAX_POOLS override defaults."""
        env = os.environ if environ is None else environ
        return cls(
            gas_price=int(env.get("SOR_GAS_PRICE", str(DEFAULT_GAS_PRICE))),
            max_pools=int(env.get("SOR_MAX_POOLS", str(DEFAULT_MAX_POOLS))),
        )


@dataclass(frozen=True)
class NetworkConfig:
    """Addresses and identity of the network being traded on."""

    key: str
    chain_id: int
    native_asset_address: str = NATIVE_ASSET_ADDRESS
    wrapped_native_address: str = WETH
    steth_address: str | None = None
    wsteth_address: str | None = None

    @property
    def is_primary(self) -> bool:
        """Whether this is the network where wrapped-collateral adjustments apply."""
        return self.chain_id == MAINNET_CHAIN_ID

    def is_native(self, address: str) -> bool:
        return is_same_address(address, self.native_asset_address)

    def is_wrapped_native(self, address: str) -> bool:
        return is_same_address(address, self.wrapped_native_address)

    def is_steth(self, address: str) -> bool:
        return is_same_address(address, self.steth_address)

    def is_wsteth(self, address: str) -> bool:
        return is_same_address(address, self.wsteth_address)


MAINNET = NetworkConfig(
    key="mainnet",
    chain_id=MAINNET_CHAIN_ID,
    steth_address=STETH,
    wsteth_address=WSTETH,
)

NETWORKS: dict[str, NetworkConfig] = {MAINNET.key: MAINNET}


DEFAULT_SOR_CONFIG = SorConfig()
