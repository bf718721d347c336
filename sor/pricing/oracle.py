"""Price oracle helpers."""

from __future__ import annotations

from collections.abc import Mapping

from sor.interfaces import PriceOracle
from sor.models.types import normalize_address


class StaticPriceOracle:
    """Fiat prices from a fixed mapping (0 for unknown tokens)."""

    def __init__(self, prices: Mapping[str, float] | None = None) -> None:
        self._prices = {normalize_address(k): float(v) for k, v in (prices or {}).items()}

    def set_price(self, address: str, price: float) -> None:
        self._prices[normalize_address(address)] = float(price)

    def price_for(self, address: str) -> float:
        return self._prices.get(normalize_address(address), 0.0)


def native_price_in_token(oracle: PriceOracle, native_asset: str, token: str) -> float:
    """How many ``token`` one unit of the native asset buys, from fiat prices.

    Returns 0 when the token's price is unknown, which disables gas cost
    normalisation for the query.
    """
    token_price = oracle.price_for(token)
    if token_price == 0:
        return 0.0
    return oracle.price_for(native_asset) / token_price
