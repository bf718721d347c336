"""Price impact and price oracle helpers."""

from sor.pricing.oracle import StaticPriceOracle, native_price_in_token
from sor.pricing.price_impact import PriceImpactEstimator, calc_price_impact, parse_spot_price

__all__ = [
    "PriceImpactEstimator",
    "StaticPriceOracle",
    "calc_price_impact",
    "native_price_in_token",
    "parse_spot_price",
]
