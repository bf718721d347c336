"""Routing engine adapter.

Wraps the external route finder with the contract the orchestrator relies
on: inputs are validated, "no liquidity" comes back as an empty route, every
query is bound to one pool snapshot end-to-end, and the gas-cost
normalisation is applied consistently.
"""

from __future__ import annotations

import dataclasses
from decimal import Decimal, InvalidOperation

import structlog

from sor.config import DEFAULT_SOR_CONFIG, MAINNET, NetworkConfig, SorConfig
from sor.constants import ONE_18, ZERO_ADDRESS
from sor.errors import RoutingEngineError
from sor.interfaces import CostParameters, RouteFinder, RouteRequest
from sor.models.route import RouteResult, SwapDirection
from sor.models.types import is_valid_address, normalize_address
from sor.pools.cache import PoolDataCache
from sor.pools.types import PoolRecord, PoolSnapshot

logger = structlog.get_logger()


class RoutingEngineAdapter:
    """Thin coordination layer over a ``RouteFinder``.

    Args:
        finder: External route-finding engine
        cache: Pool data cache the finder reads snapshots from
        config: Gas price, hop limit and per-hop gas cost
        network: Network the engine routes on
    """

    def __init__(
        self,
        finder: RouteFinder,
        cache: PoolDataCache,
        config: SorConfig = DEFAULT_SOR_CONFIG,
        network: NetworkConfig = MAINNET,
    ) -> None:
        self.finder = finder
        self.cache = cache
        self.config = config
        self.network = network
        self._cost = CostParameters()
        self._selected_pools: list[PoolRecord] = []

    @property
    def cost(self) -> CostParameters:
        return self._cost

    @property
    def selected_pools(self) -> list[PoolRecord]:
        """Pools used by the most recent successful route."""
        return list(self._selected_pools)

    def has_pool_data(self) -> bool:
        return self.cache.has_data()

    async def fetch_pools(self) -> PoolSnapshot:
        return await self.cache.refresh()

    def set_cost_output_token(
        self,
        token: str,
        decimals: int,
        native_price_in_token: str | float | Decimal,
    ) -> CostParameters:
        """Configure the gas cost of one hop, expressed in ``token``.

        Without this, routes are compared on nominal output only, which
        favours routes with more hops.

        Args:
            token: Output-side token of the upcoming query
            decimals: Decimals of ``token``
            native_price_in_token: How many ``token`` one unit of the native
                asset buys (0 disables cost normalisation)
        """
        try:
            price = Decimal(str(native_price_in_token))
        except InvalidOperation as err:
            raise RoutingEngineError(f"Invalid native price: {native_price_in_token}") from err
        if not price.is_finite() or price < 0:
            raise RoutingEngineError(f"Invalid native price: {native_price_in_token}")

        gas_cost_wei = self.config.gas_price * self.config.swap_gas_cost
        cost_per_hop = int(Decimal(gas_cost_wei) * price * (Decimal(10) ** decimals) / ONE_18)
        self._cost = CostParameters(
            token=normalize_address(token),
            decimals=decimals,
            cost_per_hop=cost_per_hop,
        )
        logger.debug(
            "swap_cost_set",
            token=self._cost.token[-8:],
            cost_per_hop=cost_per_hop,
        )
        return self._cost

    def _routing_address(self, token: str) -> str:
        # The vault represents the native asset as the zero address
        if self.network.is_native(token):
            return ZERO_ADDRESS
        return normalize_address(token)

    def _validate(
        self,
        token_in: str,
        token_out: str,
        decimals_in: int | None,
        decimals_out: int | None,
        amount: int,
    ) -> None:
        for name, token in (("token_in", token_in), ("token_out", token_out)):
            if not is_valid_address(token):
                raise RoutingEngineError(f"Invalid {name} address: {token!r}")
        if normalize_address(token_in) == normalize_address(token_out):
            raise RoutingEngineError("token_in and token_out must differ")
        if decimals_in is None or decimals_out is None:
            raise RoutingEngineError("Unknown token: decimals unavailable")
        if amount <= 0:
            raise RoutingEngineError(f"Amount must be positive, got {amount}")

    async def find_best_route(
        self,
        token_in: str,
        token_out: str,
        decimals_in: int | None,
        decimals_out: int | None,
        direction: SwapDirection,
        amount: int,
        snapshot: PoolSnapshot | None = None,
        cost: CostParameters | None = None,
    ) -> RouteResult:
        """Find the best route for a trade.

        Args:
            token_in: Input token address
            token_out: Output token address
            decimals_in: Decimals of token_in (None when the token is unknown)
            decimals_out: Decimals of token_out (None when the token is unknown)
            direction: Which side ``amount`` fixes
            amount: Fixed-side amount in that token's native decimals
            snapshot: Snapshot to route against; the cache's current one if None
            cost: Cost parameters; the last configured ones if None

        Returns:
            RouteResult; ``has_route`` is False when no liquidity is found

        Raises:
            RoutingEngineError: On malformed input or engine failure
        """
        self._validate(token_in, token_out, decimals_in, decimals_out, amount)
        assert decimals_in is not None and decimals_out is not None

        bound = snapshot if snapshot is not None else self.cache.current_snapshot()
        request = RouteRequest(
            token_in=self._routing_address(token_in),
            token_out=self._routing_address(token_out),
            decimals_in=decimals_in,
            decimals_out=decimals_out,
            direction=direction,
            amount=amount,
            max_pools=self.config.max_pools,
        )
        return_decimals = decimals_out if direction == SwapDirection.EXACT_IN else decimals_in

        if len(bound) == 0:
            return RouteResult.empty(request.token_in, request.token_out, return_decimals)

        try:
            result = await self.finder.find_route(
                request, bound, cost if cost is not None else self._cost
            )
        except RoutingEngineError:
            raise
        except Exception as err:
            raise RoutingEngineError(f"Route finder failed: {err}") from err

        if not result.has_route:
            logger.info(
                "no_route_found",
                token_in=request.token_in[-8:],
                token_out=request.token_out[-8:],
                direction=direction.value,
                generation=bound.generation,
            )
            return RouteResult.empty(
                request.token_in, request.token_out, return_decimals, bound.generation
            )

        pool_ids = result.pool_ids or tuple(dict.fromkeys(s.pool_id for s in result.swaps))
        unknown = [pid for pid in pool_ids if bound.get(pid) is None]
        if unknown:
            raise RoutingEngineError(
                f"Route references pools outside snapshot {bound.generation}: {unknown}"
            )

        result = dataclasses.replace(
            result,
            pool_ids=pool_ids,
            snapshot_generation=bound.generation,
        )
        self._selected_pools = bound.pools_by_id(pool_ids)

        logger.info(
            "route_found",
            token_in=request.token_in[-8:],
            token_out=request.token_out[-8:],
            direction=direction.value,
            hops=len(result.swaps),
            return_amount=result.return_amount,
            generation=bound.generation,
        )
        return result
