"""Price impact estimation.

Impact compares the price a trade actually realises with the route's
marginal (spot) price:

    effective = amount_in_18 * 10^decimals_out / amount_out
    impact    = effective * 1e18 / spot_18 - 1e18

Both prices are tokenIn per tokenOut, so the same formula serves exact-in
and exact-out trades. ``amount_in_18`` is the input amount raised to 18
decimals.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

import structlog

from sor.amounts import rescale, to_fixed_point
from sor.config import DEFAULT_SOR_CONFIG, SorConfig
from sor.constants import ONE_18, WAD_DECIMALS
from sor.errors import InvalidAmount, RoutingEngineError
from sor.models.route import RouteResult
from sor.wrapping import WrapAdapter

logger = structlog.get_logger()


def parse_spot_price(market_sp: str) -> int:
    """Parse a normalised spot price into 18-decimal fixed point, truncating."""
    try:
        with localcontext() as ctx:
            ctx.prec = 100
            value = Decimal(market_sp).quantize(Decimal(1).scaleb(-WAD_DECIMALS), ROUND_DOWN)
        return to_fixed_point(format(value, "f"), WAD_DECIMALS)
    except (InvalidOperation, InvalidAmount) as err:
        raise RoutingEngineError(f"Invalid market spot price: {market_sp!r}") from err


def calc_price_impact(
    amount_in: int,
    decimals_in: int,
    amount_out: int,
    decimals_out: int,
    market_sp: str,
) -> int:
    """Raw price impact as signed 18-decimal fixed point.

    Raises:
        RoutingEngineError: If the spot price is not positive or amount_out is 0
    """
    spot = parse_spot_price(market_sp)
    if spot <= 0:
        raise RoutingEngineError(f"Market spot price must be positive, got {market_sp!r}")
    if amount_out <= 0:
        raise RoutingEngineError("Cannot price a trade with no output")

    # Prices are token_in per token_out in both directions; RouteFinder
    # implementations must report market_sp_normalised the same way.
    amount_in_18 = rescale(amount_in, decimals_in, WAD_DECIMALS)
    effective_price = amount_in_18 * 10**decimals_out // amount_out
    return effective_price * ONE_18 // spot - ONE_18


class PriceImpactEstimator:
    """Scores a route's price impact for display and validation.

    Args:
        wrap_adapter: Converts wrapped-collateral legs to canonical units
        config: Impact floor
    """

    def __init__(
        self,
        wrap_adapter: WrapAdapter | None = None,
        config: SorConfig = DEFAULT_SOR_CONFIG,
    ) -> None:
        self.wrap_adapter = wrap_adapter
        self.config = config

    async def estimate(
        self,
        route: RouteResult,
        token_in: str,
        amount_in: int,
        decimals_in: int,
        token_out: str,
        amount_out: int,
        decimals_out: int,
    ) -> Decimal:
        """Price impact of a quoted trade.

        Returns exactly 0 when there is no route. Otherwise the impact is
        floored at ``config.min_price_impact`` so a routed trade is never
        shown as impact-free.

        Raises:
            ExternalQueryFailed: If a wrapped-collateral conversion fails
            RoutingEngineError: If the route's spot price is unusable
        """
        if not route.has_route:
            return Decimal(0)

        if self.wrap_adapter is not None:
            amount_in = await self.wrap_adapter.to_canonical(token_in, amount_in)
            amount_out = await self.wrap_adapter.to_canonical(token_out, amount_out)

        raw = calc_price_impact(
            amount_in, decimals_in, amount_out, decimals_out, route.market_sp_normalised
        )
        impact = Decimal(raw).scaleb(-WAD_DECIMALS)
        logger.debug("price_impact_calculated", raw_impact=str(impact))
        return max(impact, self.config.min_price_impact)
