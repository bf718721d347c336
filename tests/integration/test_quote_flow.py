"""End-to-end tests: real pools, the single-hop finder and the orchestrator.

Only execution collaborators (executors, confirmation listener, batch query)
are mocked.
"""

from decimal import Decimal

import pytest

from sor.config import MAINNET, SorConfig
from sor.models.trade import ExecutionStatus, PoolsStatus, QuoteStatus, TradeIntent
from sor.orchestrator import TradeOrchestrator
from sor.pools.cache import PoolDataCache
from sor.pools.sources import StaticPoolSource
from sor.pricing.oracle import StaticPriceOracle
from sor.routing.engine import RoutingEngineAdapter
from sor.routing.single_hop import SingleHopRouteFinder
from sor.tokens import TokenRegistry
from sor.transactions import TransactionStatus
from sor.wrapping import StaticWrapRateSource, WrapAdapter
from tests.conftest import MockConfirmationListener, MockSwapExecutor, MockWrapExecutor
from tests.helpers import (
    ETH,
    POOL_WETH_USDC,
    POOL_WETH_USDC_DEEP,
    POOL_WSTETH_WETH,
    TOKEN_DECIMALS,
    USDC,
    WETH,
    WSTETH,
    make_pool,
    make_token,
)


def build(intent: TradeIntent, pools=None, **kwargs) -> TradeOrchestrator:
    source = StaticPoolSource(pools if pools is not None else [make_pool()])
    config = SorConfig()
    routing = RoutingEngineAdapter(SingleHopRouteFinder(), PoolDataCache(source), config, MAINNET)
    return TradeOrchestrator(
        routing=routing,
        wrap_adapter=WrapAdapter(StaticWrapRateSource({WSTETH: Decimal("1.15")}), MAINNET),
        tokens=TokenRegistry(make_token(address) for address in TOKEN_DECIMALS),
        prices=StaticPriceOracle({ETH: 2500.0, WETH: 2500.0, USDC: 1.0}),
        intent=intent,
        config=config,
        network=MAINNET,
        **kwargs,
    )


class TestQuoteFlow:
    @pytest.mark.asyncio
    async def test_mount_quote_and_trade(self):
        swap_executor = MockSwapExecutor()
        orchestrator = build(
            TradeIntent(token_in_address=WETH, token_out_address=USDC, token_in_amount="1"),
            swap_executor=swap_executor,
            confirmations=MockConfirmationListener(),
        )

        await orchestrator.mount()
        await orchestrator.wait_for_pools()

        assert orchestrator.pools_status is PoolsStatus.READY
        assert orchestrator.quote_status is QuoteStatus.QUOTED
        assert orchestrator.intent.token_out_amount == "2490.02"
        assert Decimal("0.0009") < orchestrator.price_impact < Decimal("0.0011")
        assert not orchestrator.state.validation_errors.high_price_impact

        task = await orchestrator.trade()
        assert await task is True

        _, amount_in, min_out = swap_executor.swap_in_calls[0]
        assert amount_in == 10**18
        assert min_out == 2_490_020_000 * 100 // 101
        assert orchestrator.execution_status is ExecutionStatus.CONFIRMED
        assert orchestrator.transactions.records[0].status is TransactionStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_large_trade_flags_high_impact(self):
        orchestrator = build(
            TradeIntent(token_in_address=WETH, token_out_address=USDC, token_in_amount="100")
        )
        await orchestrator.fetch_pools()

        # 100 WETH against 1000 WETH of liquidity moves the price ~10%
        assert orchestrator.price_impact > Decimal("0.05")
        assert orchestrator.state.validation_errors.high_price_impact

    @pytest.mark.asyncio
    async def test_deeper_pool_selected(self):
        deep = make_pool(POOL_WETH_USDC_DEEP, balance_a="10000", balance_b="25000000")
        orchestrator = build(
            TradeIntent(token_in_address=WETH, token_out_address=USDC, token_in_amount="50"),
            pools=[make_pool(), deep],
        )
        await orchestrator.fetch_pools()

        assert [p.id for p in orchestrator.pools] == [POOL_WETH_USDC_DEEP]
        assert orchestrator.route.pool_ids == (POOL_WETH_USDC_DEEP,)

    @pytest.mark.asyncio
    async def test_native_input_routes_through_weth_pool(self):
        orchestrator = build(
            TradeIntent(token_in_address=ETH, token_out_address=USDC, token_in_amount="1")
        )
        await orchestrator.fetch_pools()

        assert orchestrator.route.pool_ids == (POOL_WETH_USDC,)
        assert orchestrator.intent.token_out_amount == "2490.02"

    @pytest.mark.asyncio
    async def test_wstETH_leg_uses_canonical_amount(self):
        pool = make_pool(POOL_WSTETH_WETH, WSTETH, WETH, "1000", "1150")
        orchestrator = build(
            TradeIntent(token_in_address=WSTETH, token_out_address=WETH, token_in_amount="1"),
            pools=[pool],
        )
        await orchestrator.fetch_pools()

        # Pricing 1.15 stETH against a wstETH-denominated spot price shows
        # the rate difference as impact
        assert orchestrator.route.has_route
        assert orchestrator.price_impact > Decimal("0.1")

    @pytest.mark.asyncio
    async def test_wrap_flow(self):
        wrap_executor = MockWrapExecutor()
        orchestrator = build(
            TradeIntent(token_in_address=ETH, token_out_address=WETH, token_in_amount="2"),
            wrap_executor=wrap_executor,
            confirmations=MockConfirmationListener(),
        )

        await orchestrator.mount()
        await orchestrator.wait_for_pools()

        assert orchestrator.intent.token_out_amount == "2"
        assert orchestrator.price_impact == 0

        task = await orchestrator.trade()
        await task
        assert wrap_executor.calls[0][0] == "wrap"
