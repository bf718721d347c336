"""Trade intent, quote and execution state models."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from sor.models.route import SwapDirection


class WrapKind(str, Enum):
    """Whether a pair is a wrap/unwrap rather than a routed swap."""

    NON_WRAP = "nonWrap"
    WRAP = "wrap"
    UNWRAP = "unwrap"

    def inverse(self) -> WrapKind:
        if self is WrapKind.WRAP:
            return WrapKind.UNWRAP
        if self is WrapKind.UNWRAP:
            return WrapKind.WRAP
        return self


class PoolsStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"


class QuoteStatus(str, Enum):
    IDLE = "idle"
    QUOTING = "quoting"
    QUOTED = "quoted"
    NO_ROUTE = "noRoute"


class ExecutionStatus(str, Enum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class TradeIntent:
    """What the user currently wants to trade.

    The amount on the side the user is editing is authoritative; the other
    side is derived by the orchestrator.
    """

    token_in_address: str = ""
    token_out_address: str = ""
    token_in_amount: str = ""
    token_out_amount: str = ""
    exact_in: bool = True
    wrap_kind: WrapKind = WrapKind.NON_WRAP
    slippage_buffer_rate: Decimal = Decimal("0.01")

    @property
    def direction(self) -> SwapDirection:
        return SwapDirection.EXACT_IN if self.exact_in else SwapDirection.EXACT_OUT

    @property
    def active_amount(self) -> str:
        """Amount on the side the user is editing."""
        return self.token_in_amount if self.exact_in else self.token_out_amount


@dataclass(frozen=True)
class TradeQuote:
    """Execution limits captured when a trade is submitted."""

    maximum_in_amount: int
    minimum_out_amount: int
    fee_amount_in_token: str = "0"
    fee_amount_out_token: str = "0"
