"""Pytest configuration and shared fixtures.

Provides in-memory fakes for every collaborator the orchestrator drives so
tests can control timing (held futures) and failures without a chain or a
subgraph.
"""

import asyncio
from collections.abc import Sequence
from decimal import Decimal

import pytest

from sor.config import MAINNET, SorConfig
from sor.interfaces import CostParameters, RouteRequest, TransactionHandle
from sor.models.route import RouteResult, SwapDirection, SwapStep
from sor.models.trade import TradeIntent, WrapKind
from sor.orchestrator import TradeOrchestrator
from sor.pools.cache import PoolDataCache
from sor.pools.sources import StaticPoolSource
from sor.pools.types import PoolSnapshot
from sor.pricing.oracle import StaticPriceOracle
from sor.routing.engine import RoutingEngineAdapter
from sor.tokens import TokenRegistry
from sor.transactions import TransactionLog
from sor.wrapping import WrapAdapter
from tests.helpers.constants import (
    DAI,
    ETH,
    POOL_WETH_USDC,
    STETH,
    TOKEN_DECIMALS,
    USDC,
    WETH,
    WSTETH,
)
from tests.helpers.factories import make_pool, make_route, make_token

TX_HASH = "0x" + "ab" * 32

# =============================================================================
# Mock collaborators
# =============================================================================


async def wait_until(predicate, attempts: int = 50) -> None:
    """Yield to the event loop until predicate() holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("Condition not reached")


class MockRouteFinder:
    """Mock route finder with controllable results and timing.

    Usage:
        # Always route with a fixed return amount
        finder = MockRouteFinder(return_amount=2_500_000_000)

        # Never find liquidity
        finder = MockRouteFinder(return_amount=0)

        # Hold every query until the test resolves it
        finder.hold()
        ...
        finder.pending[0].set_result(5_000_000_000)
    """

    def __init__(
        self,
        return_amount: int = 2_500_000_000,
        market_sp: str = "0.0004",
        pool_ids: tuple[str, ...] = (POOL_WETH_USDC,),
        error: Exception | None = None,
    ) -> None:
        self.return_amount = return_amount
        self.market_sp = market_sp
        self.pool_ids = pool_ids
        self.error = error
        self.calls: list[RouteRequest] = []  # Track calls for assertions
        self.snapshots: list[PoolSnapshot] = []
        self.costs: list[CostParameters] = []
        self._pending: list[asyncio.Future] | None = None

    def hold(self) -> None:
        """Make subsequent queries wait for a result set by the test."""
        self._pending = []

    @property
    def pending(self) -> list[asyncio.Future]:
        return self._pending if self._pending is not None else []

    async def find_route(
        self,
        request: RouteRequest,
        snapshot: PoolSnapshot,
        cost: CostParameters,
    ) -> RouteResult:
        self.calls.append(request)
        self.snapshots.append(snapshot)
        self.costs.append(cost)

        if self.error is not None:
            raise self.error

        if self._pending is not None:
            future = asyncio.get_running_loop().create_future()
            self._pending.append(future)
            return_amount = await future
        else:
            return_amount = self.return_amount

        if return_amount <= 0:
            return RouteResult.empty(request.token_in, request.token_out)
        return make_route(
            token_in=request.token_in,
            token_out=request.token_out,
            swap_amount=request.amount,
            return_amount=return_amount,
            market_sp=self.market_sp,
            pool_ids=self.pool_ids,
        )


class MockWrapRateSource:
    """Wrap rates as underlying per wrapped unit; fails when ``error`` is set."""

    def __init__(
        self,
        rates: dict[str, Decimal] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.rates = rates if rates is not None else {WSTETH: Decimal("1.25")}
        self.error = error
        self.calls: list[tuple[str, WrapKind, int]] = []

    async def get_wrap_output(self, wrapper: str, kind: WrapKind, amount: int) -> int:
        self.calls.append((wrapper, kind, amount))
        if self.error is not None:
            raise self.error
        rate = self.rates[wrapper]
        if kind is WrapKind.WRAP:
            return int(Decimal(amount) / rate)
        return int(Decimal(amount) * rate)


class MockSwapExecutor:
    """Records swaps and returns a fixed transaction handle."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.swap_in_calls: list[tuple[RouteResult, int, int]] = []
        self.swap_out_calls: list[tuple[RouteResult, int, int]] = []

    async def swap_in(
        self, route: RouteResult, amount_in: int, min_amount_out: int
    ) -> TransactionHandle:
        self.swap_in_calls.append((route, amount_in, min_amount_out))
        if self.error is not None:
            raise self.error
        return TransactionHandle(hash=TX_HASH)

    async def swap_out(
        self, route: RouteResult, max_amount_in: int, amount_out: int
    ) -> TransactionHandle:
        self.swap_out_calls.append((route, max_amount_in, amount_out))
        if self.error is not None:
            raise self.error
        return TransactionHandle(hash=TX_HASH)


class MockWrapExecutor:
    """Records wraps/unwraps and returns a fixed transaction handle."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, str, str, int]] = []

    async def wrap(self, network_key, signer, wrapper, amount) -> TransactionHandle:
        _ = signer
        self.calls.append(("wrap", network_key, wrapper, amount))
        if self.error is not None:
            raise self.error
        return TransactionHandle(hash=TX_HASH)

    async def unwrap(self, network_key, signer, wrapper, amount) -> TransactionHandle:
        _ = signer
        self.calls.append(("unwrap", network_key, wrapper, amount))
        if self.error is not None:
            raise self.error
        return TransactionHandle(hash=TX_HASH)


class MockBatchSwapQuery:
    """Returns configured vault deltas, optionally held until the test resolves them."""

    def __init__(self, deltas: list[int] | None = None, error: Exception | None = None) -> None:
        self.deltas = deltas if deltas is not None else [10**18, -2_600_000_000]
        self.error = error
        self.calls: list[tuple[SwapDirection, Sequence[SwapStep], Sequence[str]]] = []
        self._pending: list[asyncio.Future] | None = None

    def hold(self) -> None:
        self._pending = []

    @property
    def pending(self) -> list[asyncio.Future]:
        return self._pending if self._pending is not None else []

    async def query_batch_swap(self, direction, swaps, assets) -> list[int]:
        self.calls.append((direction, swaps, assets))
        if self.error is not None:
            raise self.error
        if self._pending is not None:
            future = asyncio.get_running_loop().create_future()
            self._pending.append(future)
            return await future
        return list(self.deltas)


class MockConfirmationListener:
    """Confirms (or fails) transactions, optionally held until the test decides."""

    def __init__(self, confirmed: bool = True) -> None:
        self.confirmed = confirmed
        self.calls: list[TransactionHandle] = []
        self._pending: list[asyncio.Future] | None = None

    def hold(self) -> None:
        self._pending = []

    @property
    def pending(self) -> list[asyncio.Future]:
        return self._pending if self._pending is not None else []

    async def wait_for_confirmation(self, tx: TransactionHandle) -> bool:
        self.calls.append(tx)
        if self._pending is not None:
            future = asyncio.get_running_loop().create_future()
            self._pending.append(future)
            return await future
        return self.confirmed


# =============================================================================
# Pytest fixtures for mocks
# =============================================================================


@pytest.fixture
def sor_config() -> SorConfig:
    return SorConfig()


@pytest.fixture
def pool_source() -> StaticPoolSource:
    """A static source serving the WETH/USDC pool."""
    return StaticPoolSource([make_pool()])


@pytest.fixture
def pool_cache(pool_source: StaticPoolSource) -> PoolDataCache:
    return PoolDataCache(pool_source)


@pytest.fixture
def route_finder() -> MockRouteFinder:
    return MockRouteFinder()


@pytest.fixture
def routing(
    route_finder: MockRouteFinder, pool_cache: PoolDataCache, sor_config: SorConfig
) -> RoutingEngineAdapter:
    return RoutingEngineAdapter(route_finder, pool_cache, sor_config, MAINNET)


@pytest.fixture
def wrap_rates() -> MockWrapRateSource:
    return MockWrapRateSource()


@pytest.fixture
def wrap_adapter(wrap_rates: MockWrapRateSource) -> WrapAdapter:
    return WrapAdapter(wrap_rates, MAINNET)


@pytest.fixture
def token_registry() -> TokenRegistry:
    """Registry knowing every shared test token."""
    return TokenRegistry(make_token(address) for address in TOKEN_DECIMALS)


@pytest.fixture
def price_oracle() -> StaticPriceOracle:
    return StaticPriceOracle({ETH: 2500.0, WETH: 2500.0, USDC: 1.0, DAI: 1.0, STETH: 2500.0})


@pytest.fixture
def swap_executor() -> MockSwapExecutor:
    return MockSwapExecutor()


@pytest.fixture
def wrap_executor() -> MockWrapExecutor:
    return MockWrapExecutor()


@pytest.fixture
def batch_query() -> MockBatchSwapQuery:
    return MockBatchSwapQuery()


@pytest.fixture
def confirmations() -> MockConfirmationListener:
    return MockConfirmationListener()


@pytest.fixture
def transaction_log() -> TransactionLog:
    return TransactionLog()


@pytest.fixture
def intent() -> TradeIntent:
    """Sell 1 WETH for USDC."""
    return TradeIntent(token_in_address=WETH, token_out_address=USDC, token_in_amount="1")


@pytest.fixture
def orchestrator(
    routing: RoutingEngineAdapter,
    wrap_adapter: WrapAdapter,
    token_registry: TokenRegistry,
    price_oracle: StaticPriceOracle,
    swap_executor: MockSwapExecutor,
    wrap_executor: MockWrapExecutor,
    batch_query: MockBatchSwapQuery,
    confirmations: MockConfirmationListener,
    transaction_log: TransactionLog,
    intent: TradeIntent,
    sor_config: SorConfig,
) -> TradeOrchestrator:
    """An orchestrator wired to mock collaborators (pools not yet loaded)."""
    return TradeOrchestrator(
        routing=routing,
        wrap_adapter=wrap_adapter,
        tokens=token_registry,
        prices=price_oracle,
        swap_executor=swap_executor,
        wrap_executor=wrap_executor,
        batch_query=batch_query,
        confirmations=confirmations,
        transactions=transaction_log,
        signer=object(),
        intent=intent,
        config=sor_config,
        network=MAINNET,
    )
