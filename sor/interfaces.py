"""Capability interfaces for the collaborators the orchestrator drives.

Everything outside the coordination layer (the route-finding engine, wallet
and vault execution, token and price services) is reached through these
protocols and injected at construction, so tests can substitute fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from sor.models.route import RouteResult, SwapDirection, SwapStep
    from sor.models.tokens import Token
    from sor.models.trade import WrapKind
    from sor.pools.types import PoolRecord, PoolSnapshot


@dataclass(frozen=True)
class CostParameters:
    """Gas cost normalisation for route comparison.

    Attributes:
        token: Token the cost is expressed in (the routing query's output side)
        decimals: Decimals of ``token``
        cost_per_hop: Cost of one pool hop in ``token``'s native units
    """

    token: str = ""
    decimals: int = 18
    cost_per_hop: int = 0


@dataclass(frozen=True)
class RouteRequest:
    """Inputs for a single best-route query."""

    token_in: str
    token_out: str
    decimals_in: int
    decimals_out: int
    direction: SwapDirection
    amount: int
    max_pools: int


@dataclass(frozen=True)
class TransactionHandle:
    """A submitted transaction."""

    hash: str
    raw: Any = None


class PoolSource(Protocol):
    """Source of the full liquidity pool set (subgraph, static file, ...)."""

    async def fetch_pools(self) -> Sequence[PoolRecord]:
        """Fetch all pools currently available for routing."""
        ...


class RouteFinder(Protocol):
    """External route-finding engine.

    Must only read pools from the snapshot it is given and must return
    ``RouteResult.empty()`` rather than raise when there is no liquidity.
    """

    async def find_route(
        self,
        request: RouteRequest,
        snapshot: PoolSnapshot,
        cost: CostParameters,
    ) -> RouteResult: ...


class WrapRateSource(Protocol):
    """Read-only query for a wrapper's current exchange rate."""

    async def get_wrap_output(self, wrapper: str, kind: WrapKind, amount: int) -> int:
        """Amount received for wrapping/unwrapping ``amount`` through ``wrapper``."""
        ...


class TokenMetadataService(Protocol):
    def get_token(self, address: str) -> Token | None: ...

    async def inject_tokens(self, addresses: Sequence[str]) -> None: ...


class PriceOracle(Protocol):
    def price_for(self, address: str) -> float:
        """Fiat price of a token (0 when unknown)."""
        ...


class WrapExecutor(Protocol):
    async def wrap(
        self, network_key: str, signer: Any, wrapper: str, amount: int
    ) -> TransactionHandle: ...

    async def unwrap(
        self, network_key: str, signer: Any, wrapper: str, amount: int
    ) -> TransactionHandle: ...


class SwapExecutor(Protocol):
    async def swap_in(
        self, route: RouteResult, amount_in: int, min_amount_out: int
    ) -> TransactionHandle: ...

    async def swap_out(
        self, route: RouteResult, max_amount_in: int, amount_out: int
    ) -> TransactionHandle: ...


class BatchSwapQuery(Protocol):
    async def query_batch_swap(
        self,
        direction: SwapDirection,
        swaps: Sequence[SwapStep],
        assets: Sequence[str],
    ) -> list[int]:
        """Simulate a batch swap and return the per-asset vault deltas."""
        ...


class ConfirmationListener(Protocol):
    async def wait_for_confirmation(self, tx: TransactionHandle) -> bool:
        """Wait until the transaction is mined; True if it succeeded."""
        ...
