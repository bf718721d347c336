"""Data models for smart order routing."""

from sor.models.route import RouteResult, SwapDirection, SwapStep
from sor.models.tokens import Token
from sor.models.trade import (
    ExecutionStatus,
    PoolsStatus,
    QuoteStatus,
    TradeIntent,
    TradeQuote,
    WrapKind,
)
from sor.models.types import Address, is_same_address, is_valid_address, normalize_address

__all__ = [
    "Address",
    "ExecutionStatus",
    "PoolsStatus",
    "QuoteStatus",
    "RouteResult",
    "SwapDirection",
    "SwapStep",
    "Token",
    "TradeIntent",
    "TradeQuote",
    "WrapKind",
    "is_same_address",
    "is_valid_address",
    "normalize_address",
]
