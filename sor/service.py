"""Quote service backing the HTTP API.

Shares one routing adapter (and so one pool cache) across requests and
runs a short-lived ``TradeOrchestrator`` per quote.
"""

from __future__ import annotations

import os
from functools import lru_cache

import structlog

from sor.amounts import to_fixed_point
from sor.config import MAINNET, NetworkConfig, SorConfig
from sor.errors import ExternalQueryFailed, InvalidAmount
from sor.interfaces import PoolSource, PriceOracle
from sor.models.quote import QuoteRequest, QuoteResponse
from sor.models.route import SwapDirection
from sor.models.tokens import Token
from sor.models.trade import TradeIntent
from sor.orchestrator import TradeOrchestrator
from sor.pools.cache import PoolDataCache
from sor.pools.sources import StaticPoolSource
from sor.pools.subgraph import SubgraphPoolSource
from sor.pricing.oracle import StaticPriceOracle
from sor.routing.engine import RoutingEngineAdapter
from sor.routing.single_hop import SingleHopRouteFinder
from sor.tokens import TokenRegistry
from sor.wrapping import StaticWrapRateSource, WrapAdapter

logger = structlog.get_logger()


class QuoteService:
    """Quotes trades against a shared pool cache."""

    def __init__(
        self,
        routing: RoutingEngineAdapter,
        wrap_adapter: WrapAdapter,
        tokens: TokenRegistry,
        prices: PriceOracle,
        config: SorConfig,
        network: NetworkConfig = MAINNET,
    ) -> None:
        self.routing = routing
        self.wrap_adapter = wrap_adapter
        self.tokens = tokens
        self.prices = prices
        self.config = config
        self.network = network
        if tokens.get_token(network.native_asset_address) is None:
            tokens.add(Token(address=network.native_asset_address, decimals=18, symbol="ETH"))

    async def ensure_pools(self) -> None:
        """Fetch pools once, registering every pool token's decimals.

        Raises:
            ExternalQueryFailed: If the first fetch fails
        """
        if self.routing.has_pool_data():
            return
        snapshot = await self.routing.fetch_pools()
        for pool in snapshot.pools:
            for pool_token in pool.tokens:
                if self.tokens.get_token(pool_token.address) is None:
                    self.tokens.add(Token(address=pool_token.address, decimals=pool_token.decimals))

    def _validate(self, request: QuoteRequest) -> None:
        fixed = request.token_in if request.kind == SwapDirection.EXACT_IN else request.token_out
        for address in (request.token_in, request.token_out):
            if self.tokens.get_token(address) is None:
                raise InvalidAmount(f"Unknown token: {address}")
        token = self.tokens.get_token(fixed)
        assert token is not None
        if to_fixed_point(request.amount, token.decimals) <= 0:
            raise InvalidAmount("Amount must be positive")

    async def quote(self, request: QuoteRequest) -> QuoteResponse:
        """Quote a trade.

        Raises:
            InvalidAmount: If a token is unknown or the amount is malformed
            ExternalQueryFailed: If pools are unavailable or the quote failed
        """
        await self.ensure_pools()
        self._validate(request)

        exact_in = request.kind == SwapDirection.EXACT_IN
        intent = TradeIntent(
            token_in_address=request.token_in,
            token_out_address=request.token_out,
            token_in_amount=request.amount if exact_in else "",
            token_out_amount="" if exact_in else request.amount,
            exact_in=exact_in,
            slippage_buffer_rate=request.slippage,
        )
        orchestrator = TradeOrchestrator(
            routing=self.routing,
            wrap_adapter=self.wrap_adapter,
            tokens=self.tokens,
            prices=self.prices,
            intent=intent,
            config=self.config,
            network=self.network,
        )
        await orchestrator.handle_amount_change()

        if orchestrator.state.quote_error is not None:
            raise ExternalQueryFailed(
                f"Quote could not be computed: {orchestrator.state.quote_error}"
            )

        route = orchestrator.route
        quote = orchestrator.get_quote()
        return QuoteResponse(
            token_in=request.token_in,
            token_out=request.token_out,
            token_in_amount=intent.token_in_amount,
            token_out_amount=intent.token_out_amount,
            kind=request.kind,
            wrap_kind=intent.wrap_kind.value,
            has_route=route.has_route,
            return_amount=str(route.return_amount),
            price_impact=str(orchestrator.price_impact),
            high_price_impact=orchestrator.state.validation_errors.high_price_impact,
            maximum_in_amount=str(quote.maximum_in_amount),
            minimum_out_amount=str(quote.minimum_out_amount),
            swaps=QuoteResponse.swaps_from_route(route),
            token_addresses=list(route.token_addresses),
            market_sp=route.market_sp_normalised if route.has_route else None,
            pool_generation=route.snapshot_generation,
        )


def pool_source_from_env() -> PoolSource:
    """Pool source configured by SOR_POOLS_FILE or SOR_SUBGRAPH_URL."""
    pools_file = os.environ.get("SOR_POOLS_FILE")
    if pools_file:
        return StaticPoolSource.from_file(pools_file)
    subgraph_url = os.environ.get("SOR_SUBGRAPH_URL")
    if subgraph_url:
        return SubgraphPoolSource(subgraph_url)
    logger.warning("no_pool_source_configured")
    return StaticPoolSource()


def build_quote_service(
    source: PoolSource,
    config: SorConfig | None = None,
    network: NetworkConfig = MAINNET,
) -> QuoteService:
    """Wire a quote service around a pool source and the single-hop finder."""
    config = config or SorConfig.from_env()
    cache = PoolDataCache(source)
    routing = RoutingEngineAdapter(
        SingleHopRouteFinder(network.wrapped_native_address), cache, config, network
    )
    return QuoteService(
        routing=routing,
        wrap_adapter=WrapAdapter(StaticWrapRateSource(), network),
        tokens=TokenRegistry(),
        prices=StaticPriceOracle(),
        config=config,
        network=network,
    )


@lru_cache(maxsize=1)
def get_default_quote_service() -> QuoteService:
    return build_quote_service(pool_source_from_env())
