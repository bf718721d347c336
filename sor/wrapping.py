"""Wrap/unwrap detection and quoting.

Some token pairs are not pool swaps at all: ETH <-> WETH and
stETH <-> wstETH convert through the wrapper contract. This module detects
those pairs and quotes them against the wrapper's current rate.
"""

from __future__ import annotations

from decimal import Decimal, localcontext

import structlog

from sor.config import MAINNET, NetworkConfig
from sor.errors import ExternalQueryFailed
from sor.interfaces import WrapRateSource
from sor.models.trade import WrapKind
from sor.models.types import normalize_address

logger = structlog.get_logger()


def get_wrap_kind(token_in: str, token_out: str, network: NetworkConfig = MAINNET) -> WrapKind:
    """Classify a pair as wrap, unwrap or a regular routed swap."""
    if not token_in or not token_out:
        return WrapKind.NON_WRAP
    if network.is_native(token_in) and network.is_wrapped_native(token_out):
        return WrapKind.WRAP
    if network.is_wrapped_native(token_in) and network.is_native(token_out):
        return WrapKind.UNWRAP
    if network.is_steth(token_in) and network.is_wsteth(token_out):
        return WrapKind.WRAP
    if network.is_wsteth(token_in) and network.is_steth(token_out):
        return WrapKind.UNWRAP
    return WrapKind.NON_WRAP


def wrapper_for(kind: WrapKind, token_in: str, token_out: str) -> str:
    """The wrapper contract address for a wrap (output side) or unwrap (input side)."""
    if kind is WrapKind.WRAP:
        return token_out
    if kind is WrapKind.UNWRAP:
        return token_in
    raise ValueError("Routed swaps have no wrapper")


class WrapAdapter:
    """Quotes wrap/unwrap conversions.

    Wrapped-native conversions are 1:1 and never hit the rate source; other
    wrappers are queried at their present on-chain rate. Failures surface
    immediately as ``ExternalQueryFailed``; retrying is the caller's call.

    Args:
        rate_source: Read-only rate query against the wrapper contracts
        network: Network whose wrapper addresses apply
    """

    def __init__(self, rate_source: WrapRateSource, network: NetworkConfig = MAINNET) -> None:
        self.rate_source = rate_source
        self.network = network

    async def get_wrap_output(self, wrapper: str, kind: WrapKind, amount: int) -> int:
        if kind is WrapKind.NON_WRAP:
            raise ValueError("get_wrap_output requires a wrap or unwrap")
        if self.network.is_wrapped_native(wrapper):
            return amount
        try:
            return await self.rate_source.get_wrap_output(wrapper, kind, amount)
        except ExternalQueryFailed:
            raise
        except Exception as err:
            logger.warning(
                "wrap_rate_query_failed",
                wrapper=wrapper[-8:],
                kind=kind.value,
                exc_info=True,
            )
            raise ExternalQueryFailed(f"Wrap rate query failed for {wrapper}: {err}") from err

    async def quote_wrap(self, wrapper: str, amount: int) -> int:
        return await self.get_wrap_output(wrapper, WrapKind.WRAP, amount)

    async def quote_unwrap(self, wrapper: str, amount: int) -> int:
        return await self.get_wrap_output(wrapper, WrapKind.UNWRAP, amount)

    async def quote(self, kind: WrapKind, wrapper: str, amount: int, exact_in: bool = True) -> int:
        """Quote the opposite side of a wrap/unwrap.

        When the user edits the output side (exact_in=False), the input is
        found by running the inverse conversion on the output amount.
        """
        return await self.get_wrap_output(wrapper, kind if exact_in else kind.inverse(), amount)

    def is_wrapped_collateral(self, token: str) -> bool:
        """Whether amounts of ``token`` must be converted to canonical units for pricing."""
        return self.network.is_primary and self.network.is_wsteth(token)

    async def to_canonical(self, token: str, amount: int) -> int:
        """Convert a wrapped-collateral amount to its underlying units; identity otherwise."""
        if not self.is_wrapped_collateral(token):
            return amount
        return await self.quote_unwrap(token, amount)


class StaticWrapRateSource:
    """Wrap rates from a fixed mapping of wrapper -> underlying per wrapped unit.

    Unknown wrappers raise ``ExternalQueryFailed``.
    """

    def __init__(self, rates: dict[str, Decimal] | None = None) -> None:
        self._rates = {normalize_address(k): Decimal(str(v)) for k, v in (rates or {}).items()}

    async def get_wrap_output(self, wrapper: str, kind: WrapKind, amount: int) -> int:
        rate = self._rates.get(normalize_address(wrapper))
        if rate is None or rate <= 0:
            raise ExternalQueryFailed(f"No wrap rate for {wrapper}")
        with localcontext() as ctx:
            ctx.prec = 80
            if kind is WrapKind.WRAP:
                return int(Decimal(amount) / rate)
            return int(Decimal(amount) * rate)
