"""Single-hop route finder over weighted pools.

A self-contained ``RouteFinder`` that prices each weighted pool holding both
tokens with the weighted-product formula and picks the best one net of gas
cost. It stands in for the full multi-hop engine in tests and small
deployments.

Formulas (fee taken on the input side):
    out = balance_out * (1 - (balance_in / (balance_in + in * (1 - fee))) ^ (w_in / w_out))
    in  = balance_in * ((balance_out / (balance_out - out)) ^ (w_out / w_in) - 1) / (1 - fee)
    spot price (in per out) = (balance_in / w_in) / (balance_out / w_out) / (1 - fee)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_DOWN, Decimal, localcontext

import structlog

from sor.constants import WETH, ZERO_ADDRESS
from sor.interfaces import CostParameters, RouteRequest
from sor.models.route import RouteResult, SwapDirection, SwapStep
from sor.models.types import normalize_address
from sor.pools.types import PoolRecord, PoolSnapshot, PoolToken

logger = structlog.get_logger()

# Balancer rejects swaps moving more than 30% of a balance
MAX_IN_RATIO = Decimal("0.3")
MAX_OUT_RATIO = Decimal("0.3")

_PRECISION = 60


@dataclass(frozen=True)
class _Quote:
    pool: PoolRecord
    amount: int
    spot_price: Decimal


def _human(pool_token: PoolToken) -> Decimal:
    return Decimal(pool_token.balance).scaleb(-pool_token.decimals)


def _format_price(price: Decimal) -> str:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return format(price.quantize(Decimal(1).scaleb(-18), rounding=ROUND_DOWN), "f")


class SingleHopRouteFinder:
    """Best single pool for a pair.

    Args:
        wrapped_native: Token the zero address (native asset) trades as
    """

    def __init__(self, wrapped_native: str = WETH) -> None:
        self.wrapped_native = normalize_address(wrapped_native)

    def _pool_token(self, token: str) -> str:
        return self.wrapped_native if token == ZERO_ADDRESS else token

    def _quote_pool(self, pool: PoolRecord, request: RouteRequest) -> _Quote | None:
        token_in = pool.get_token(self._pool_token(request.token_in))
        token_out = pool.get_token(self._pool_token(request.token_out))
        if token_in is None or token_out is None:
            return None
        if token_in.weight is None or token_out.weight is None:
            logger.debug("single_hop_skip_unweighted", pool_id=pool.id, pool_type=pool.pool_type)
            return None
        if token_in.weight <= 0 or token_out.weight <= 0:
            logger.debug("single_hop_skip_invalid_weight", pool_id=pool.id)
            return None
        if token_in.balance <= 0 or token_out.balance <= 0:
            return None

        with localcontext() as ctx:
            ctx.prec = _PRECISION
            balance_in = _human(token_in)
            balance_out = _human(token_out)
            fee_complement = 1 - pool.swap_fee
            spot_price = (balance_in / token_in.weight) / (balance_out / token_out.weight)
            spot_price /= fee_complement

            if request.direction == SwapDirection.EXACT_IN:
                amount_in = Decimal(request.amount).scaleb(-request.decimals_in)
                if amount_in > balance_in * MAX_IN_RATIO:
                    return None
                base = balance_in / (balance_in + amount_in * fee_complement)
                amount_out = balance_out * (1 - base ** (token_in.weight / token_out.weight))
                raw = int(
                    amount_out.scaleb(request.decimals_out).to_integral_value(rounding=ROUND_DOWN)
                )
            else:
                amount_out = Decimal(request.amount).scaleb(-request.decimals_out)
                if amount_out >= balance_out * MAX_OUT_RATIO:
                    return None
                base = balance_out / (balance_out - amount_out)
                amount_in = balance_in * (base ** (token_out.weight / token_in.weight) - 1)
                amount_in /= fee_complement
                raw = int(
                    amount_in.scaleb(request.decimals_in).to_integral_value(rounding=ROUND_CEILING)
                )

        if raw <= 0:
            return None
        return _Quote(pool=pool, amount=raw, spot_price=spot_price)

    async def find_route(
        self,
        request: RouteRequest,
        snapshot: PoolSnapshot,
        cost: CostParameters,
    ) -> RouteResult:
        exact_in = request.direction == SwapDirection.EXACT_IN
        return_decimals = request.decimals_out if exact_in else request.decimals_in

        best: _Quote | None = None
        best_net: int | None = None
        for pool in snapshot.pools:
            quote = self._quote_pool(pool, request)
            if quote is None:
                continue
            # Output-side cost: received amount shrinks, paid amount grows
            net = quote.amount - cost.cost_per_hop if exact_in else -(
                quote.amount + cost.cost_per_hop
            )
            if best_net is None or net > best_net:
                best, best_net = quote, net

        if best is None:
            return RouteResult.empty(request.token_in, request.token_out, return_decimals)

        return RouteResult(
            token_in=request.token_in,
            token_out=request.token_out,
            swaps=(
                SwapStep(
                    pool_id=best.pool.id,
                    asset_in_index=0,
                    asset_out_index=1,
                    amount=request.amount,
                ),
            ),
            token_addresses=(request.token_in, request.token_out),
            swap_amount=request.amount,
            return_amount=best.amount,
            return_decimals=return_decimals,
            market_sp_normalised=_format_price(best.spot_price),
            pool_ids=(best.pool.id,),
        )
