"""Trade orchestration.

``TradeOrchestrator`` owns one user's trade intent and everything derived
from it: the current route, the opposite-side amount, price impact and the
high-impact warning. It decides between the wrap path and the routed path,
keeps pool data fresh, and submits trades with slippage-bounded limits.

Every quote bumps a generation counter and captures the value when it
starts. Work that finishes after a newer quote has started is dropped
without touching state, so a slow, older quote can never overwrite a newer
one.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog

from sor.amounts import format_for_display, from_fixed_point, is_zero_amount, to_fixed_point
from sor.config import DEFAULT_SOR_CONFIG, MAINNET, NetworkConfig, SorConfig
from sor.constants import ONE_18, WAD_DECIMALS, ZERO_ADDRESS
from sor.errors import ExecutionFailed, ExternalQueryFailed, InvalidAmount
from sor.interfaces import (
    BatchSwapQuery,
    ConfirmationListener,
    CostParameters,
    PriceOracle,
    SwapExecutor,
    TokenMetadataService,
    TransactionHandle,
    WrapExecutor,
)
from sor.models.route import RouteResult, SwapDirection
from sor.models.trade import (
    ExecutionStatus,
    PoolsStatus,
    QuoteStatus,
    TradeIntent,
    TradeQuote,
    WrapKind,
)
from sor.pools.types import PoolRecord
from sor.pricing.oracle import native_price_in_token
from sor.pricing.price_impact import PriceImpactEstimator
from sor.routing.engine import RoutingEngineAdapter
from sor.transactions import (
    TradeDetails,
    TransactionAction,
    TransactionLog,
    TransactionRecord,
    TransactionStatus,
)
from sor.wrapping import WrapAdapter, get_wrap_kind, wrapper_for

logger = structlog.get_logger()


@dataclass
class ValidationErrors:
    high_price_impact: bool = False


@dataclass
class SorState:
    """Validation and submission state owned by a single orchestrator."""

    validation_errors: ValidationErrors = field(default_factory=ValidationErrors)
    submission_error: str | None = None
    quote_error: str | None = None


class TradeOrchestrator:
    """Coordinates quoting and execution for one trade form.

    Args:
        routing: Routing engine adapter (owns the pool data cache)
        wrap_adapter: Quotes wrap/unwrap pairs
        tokens: Token metadata service
        prices: Fiat price oracle for gas cost normalisation
        swap_executor: Submits routed swaps
        wrap_executor: Submits wraps/unwraps
        batch_query: Simulates the current route for post-quote refinement
        confirmations: Waits for submitted transactions to be mined
        transactions: History that submitted trades are recorded in
        signer: Opaque signer context forwarded to the wrap executor
        intent: Initial trade intent
        config: Routing and display configuration
        network: Network being traded on
        price_impact: Estimator; built from ``wrap_adapter`` and ``config`` if None
    """

    def __init__(
        self,
        *,
        routing: RoutingEngineAdapter,
        wrap_adapter: WrapAdapter,
        tokens: TokenMetadataService,
        prices: PriceOracle,
        swap_executor: SwapExecutor | None = None,
        wrap_executor: WrapExecutor | None = None,
        batch_query: BatchSwapQuery | None = None,
        confirmations: ConfirmationListener | None = None,
        transactions: TransactionLog | None = None,
        signer: Any = None,
        intent: TradeIntent | None = None,
        config: SorConfig = DEFAULT_SOR_CONFIG,
        network: NetworkConfig = MAINNET,
        price_impact: PriceImpactEstimator | None = None,
    ) -> None:
        self.routing = routing
        self.wrap_adapter = wrap_adapter
        self.tokens = tokens
        self.prices = prices
        self.swap_executor = swap_executor
        self.wrap_executor = wrap_executor
        self.batch_query = batch_query
        self.confirmations = confirmations
        self.transactions = transactions if transactions is not None else TransactionLog()
        self.signer = signer
        self.intent = intent if intent is not None else TradeIntent()
        self.config = config
        self.network = network
        self.estimator = price_impact or PriceImpactEstimator(wrap_adapter, config)

        self.state = SorState()
        self.route = RouteResult.empty()
        self.pools: list[PoolRecord] = []
        self.price_impact = Decimal(0)
        self.trading = False
        self.confirming = False
        self.latest_tx_hash = ""
        self.pools_status = PoolsStatus.IDLE
        self.quote_status = QuoteStatus.IDLE
        self.execution_status = ExecutionStatus.IDLE

        self._generation = 0
        self._route_generation = 0
        self._settled_quote_status = QuoteStatus.IDLE
        self._pools_task: asyncio.Task[None] | None = None
        self._confirmation_task: asyncio.Task[bool] | None = None

    # =============================================================================
    # Lifecycle and pool data
    # =============================================================================

    @property
    def pools_loading(self) -> bool:
        return self.pools_status is not PoolsStatus.READY

    @property
    def generation(self) -> int:
        """Generation of the most recently started quote."""
        return self._generation

    async def mount(self) -> None:
        """Inject unknown tokens, start the first pool refresh and quote."""
        unknown = [
            address
            for address in (self.intent.token_in_address, self.intent.token_out_address)
            if address and self.tokens.get_token(address) is None
        ]
        try:
            await self.tokens.inject_tokens(unknown)
        except ExternalQueryFailed:
            logger.warning("token_injection_failed", tokens=unknown, exc_info=True)
        self.init_sor()
        await self.handle_amount_change()

    def init_sor(self) -> asyncio.Task[None]:
        """Start the first pool refresh in the background."""
        self.pools_status = PoolsStatus.LOADING
        self._pools_task = asyncio.create_task(self.fetch_pools())
        return self._pools_task

    async def wait_for_pools(self) -> None:
        if self._pools_task is not None:
            await self._pools_task

    async def fetch_pools(self) -> None:
        """Refresh pool data, then re-quote against the fresh balances.

        A failed refresh is logged and the previous snapshot keeps serving.
        """
        if self.pools_status is not PoolsStatus.READY:
            self.pools_status = PoolsStatus.LOADING
        try:
            await self.routing.fetch_pools()
        except ExternalQueryFailed:
            logger.warning(
                "pool_refresh_failed_serving_stale",
                has_pool_data=self.routing.has_pool_data(),
            )
            if self.routing.has_pool_data():
                self.pools_status = PoolsStatus.READY
            return

        self.pools_status = PoolsStatus.READY
        if self.config.requote_on_pool_refresh and not self.confirming:
            await self.handle_amount_change()

    # =============================================================================
    # Quoting
    # =============================================================================

    def reset_state(self) -> None:
        self.state.validation_errors.high_price_impact = False
        self.state.submission_error = None
        self.state.quote_error = None

    def reset_input_amounts(self, amount: str) -> None:
        """Set both amounts to ``amount`` and clear the current route."""
        self.intent.token_in_amount = amount
        self.intent.token_out_amount = amount
        self.price_impact = Decimal(0)
        self.route = RouteResult.empty(
            self.route.token_in, self.route.token_out, self.route.return_decimals
        )
        self.pools = []
        self.state.validation_errors.high_price_impact = False
        self._settle_quote(QuoteStatus.IDLE)

    def _settle_quote(self, status: QuoteStatus) -> None:
        self.quote_status = status
        self._settled_quote_status = status

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug(
                "stale_quote_discarded",
                quote_generation=generation,
                current_generation=self._generation,
            )
            return True
        return False

    def _decimals(self, address: str) -> int | None:
        token = self.tokens.get_token(address)
        return token.decimals if token is not None else None

    def _display(self, amount: int, decimals: int) -> str:
        if amount <= 0:
            return ""
        return format_for_display(
            from_fixed_point(amount, decimals), self.config.display_significant_digits
        )

    def _clear_derived_amount(self) -> None:
        if self.intent.exact_in:
            self.intent.token_out_amount = ""
        else:
            self.intent.token_in_amount = ""

    async def handle_amount_change(self) -> None:
        """Re-quote after any change to the amount, token pair or direction.

        Failures degrade the quote instead of propagating: invalid amounts
        clear the derived side, external failures leave the previous quote
        and record the error in ``state.quote_error``.
        """
        self._generation += 1
        generation = self._generation
        intent = self.intent
        amount = intent.active_amount
        self.state.quote_error = None

        # Never query the routing engine for zero-valued trades
        if is_zero_amount(amount):
            self.reset_input_amounts(amount)
            return

        token_in, token_out = intent.token_in_address, intent.token_out_address
        if not token_in or not token_out:
            self._clear_derived_amount()
            return

        intent.wrap_kind = get_wrap_kind(token_in, token_out, self.network)

        try:
            if intent.wrap_kind is not WrapKind.NON_WRAP:
                await self._quote_wrap(generation)
                return

            if not self.routing.has_pool_data():
                self._clear_derived_amount()
                return

            await self._quote_route(generation)
        except InvalidAmount:
            if self._is_stale(generation):
                return
            logger.info("invalid_trade_amount", amount=amount, exact_in=intent.exact_in)
            self._clear_derived_amount()
            self._settle_quote(QuoteStatus.IDLE)
        except ExternalQueryFailed as err:
            if self._is_stale(generation):
                return
            logger.warning(
                "quote_failed",
                token_in=token_in[-8:],
                token_out=token_out[-8:],
                generation=generation,
                exc_info=True,
            )
            # The previous quote is still shown, so is its status
            self.quote_status = self._settled_quote_status
            self.state.quote_error = str(err)

    async def _quote_wrap(self, generation: int) -> None:
        intent = self.intent
        kind = intent.wrap_kind
        wrapper = wrapper_for(kind, intent.token_in_address, intent.token_out_address)
        decimals_in = self._decimals(intent.token_in_address)
        decimals_out = self._decimals(intent.token_out_address)
        if decimals_in is None or decimals_out is None:
            raise InvalidAmount("Token decimals unknown")

        self.quote_status = QuoteStatus.QUOTING
        if intent.exact_in:
            amount = to_fixed_point(intent.token_in_amount, decimals_in)
            output = await self.wrap_adapter.quote(kind, wrapper, amount, exact_in=True)
            if self._is_stale(generation):
                return
            intent.token_out_amount = from_fixed_point(output, decimals_out)
        else:
            amount = to_fixed_point(intent.token_out_amount, decimals_out)
            required = await self.wrap_adapter.quote(kind, wrapper, amount, exact_in=False)
            if self._is_stale(generation):
                return
            intent.token_in_amount = from_fixed_point(required, decimals_in)

        # Wraps never touch a pool, so they carry no price impact
        self.route = RouteResult.empty(intent.token_in_address, intent.token_out_address)
        self._route_generation = generation
        self.pools = []
        self.price_impact = Decimal(0)
        self.state.validation_errors.high_price_impact = False
        self._settle_quote(QuoteStatus.QUOTED)

    def set_swap_cost(self, token: str, decimals: int) -> CostParameters:
        """Configure route cost normalisation in terms of ``token``.

        Raises:
            ExternalQueryFailed: If the price oracle fails
        """
        try:
            price = native_price_in_token(self.prices, self.network.native_asset_address, token)
        except Exception as err:
            raise ExternalQueryFailed(f"Price lookup failed for {token}: {err}") from err
        return self.routing.set_cost_output_token(token, decimals, str(price))

    async def _quote_route(self, generation: int) -> None:
        intent = self.intent
        token_in, token_out = intent.token_in_address, intent.token_out_address
        decimals_in = self._decimals(token_in)
        decimals_out = self._decimals(token_out)
        if decimals_in is None or decimals_out is None:
            raise InvalidAmount("Token decimals unknown")

        self.quote_status = QuoteStatus.QUOTING
        # One snapshot for the whole computation
        snapshot = self.routing.cache.current_snapshot()

        if intent.exact_in:
            # The cost token is the query's output side
            cost = self.set_swap_cost(token_out, decimals_out)
            amount_in = to_fixed_point(intent.token_in_amount, decimals_in)
            route = await self.routing.find_best_route(
                token_in,
                token_out,
                decimals_in,
                decimals_out,
                SwapDirection.EXACT_IN,
                amount_in,
                snapshot=snapshot,
                cost=cost,
            )
            amount_out = route.return_amount
        else:
            cost = self.set_swap_cost(token_in, decimals_in)
            amount_out = to_fixed_point(intent.token_out_amount, decimals_out)
            route = await self.routing.find_best_route(
                token_in,
                token_out,
                decimals_in,
                decimals_out,
                SwapDirection.EXACT_OUT,
                amount_out,
                snapshot=snapshot,
                cost=cost,
            )
            amount_in = route.return_amount

        if self._is_stale(generation):
            return

        impact = await self.estimator.estimate(
            route,
            token_in,
            amount_in,
            decimals_in,
            token_out,
            amount_out,
            decimals_out,
        )
        if self._is_stale(generation):
            return

        self.route = route
        self._route_generation = generation
        if intent.exact_in:
            intent.token_out_amount = self._display(route.return_amount, decimals_out)
        else:
            intent.token_in_amount = self._display(route.return_amount, decimals_in)

        self.price_impact = impact
        self.pools = snapshot.pools_by_id(route.pool_ids)
        self._settle_quote(QuoteStatus.QUOTED if route.has_route else QuoteStatus.NO_ROUTE)
        self.state.validation_errors.high_price_impact = (
            impact >= self.config.high_price_impact_threshold
        )

    async def update_trade_amounts(self) -> None:
        """Refine the derived amount by simulating the current route on-chain.

        Skipped without a route or while a submission is being confirmed.
        Results for a route that has since been replaced are discarded.
        """
        if self.batch_query is None or not self.route.has_route or self.confirming:
            return

        route = self.route
        route_generation = self._route_generation
        intent = self.intent
        try:
            deltas = await self.batch_query.query_batch_swap(
                intent.direction, route.swaps, route.token_addresses
            )
        except Exception:
            logger.warning("batch_swap_query_failed", exc_info=True)
            return

        if route is not self.route or route_generation != self._route_generation:
            logger.debug(
                "stale_batch_query_discarded",
                query_generation=route_generation,
                current_generation=self._route_generation,
            )
            return
        if self.confirming or len(deltas) < 2:
            return

        token_in, token_out = intent.token_in_address, intent.token_out_address
        position_in = route.index_of(self._vault_address(token_in))
        position_out = route.index_of(self._vault_address(token_out))
        if position_in < 0 or position_out < 0:
            logger.warning(
                "batch_swap_token_not_in_route",
                token_in=token_in[-8:],
                token_out=token_out[-8:],
            )
            return

        if intent.exact_in:
            decimals_out = self._decimals(token_out)
            if decimals_out is not None:
                intent.token_out_amount = self._display(abs(deltas[position_out]), decimals_out)
        else:
            decimals_in = self._decimals(token_in)
            if decimals_in is not None:
                intent.token_in_amount = self._display(abs(deltas[position_in]), decimals_in)

    def _vault_address(self, token: str) -> str:
        if self.network.is_native(token):
            return ZERO_ADDRESS
        # stETH is routed as wstETH, which is what appears in the route's assets
        if self.network.is_steth(token) and self.network.wsteth_address is not None:
            return self.network.wsteth_address
        return token

    # =============================================================================
    # Execution
    # =============================================================================

    def _slippage_multiplier(self) -> int:
        rate = Decimal(1) + Decimal(str(self.intent.slippage_buffer_rate))
        return to_fixed_point(format(rate.quantize(Decimal(1).scaleb(-WAD_DECIMALS)), "f"), 18)

    def get_max_in(self, amount: int) -> int:
        """Worst acceptable input for an exact-out trade."""
        return amount * self._slippage_multiplier() // ONE_18

    def get_min_out(self, amount: int) -> int:
        """Worst acceptable output for an exact-in trade."""
        return amount * ONE_18 // self._slippage_multiplier()

    def _scaled(self, amount: str, address: str) -> int:
        decimals = self._decimals(address)
        if decimals is None or not amount:
            return 0
        try:
            return to_fixed_point(amount, decimals)
        except InvalidAmount:
            return 0

    @property
    def token_in_amount_scaled(self) -> int:
        return self._scaled(self.intent.token_in_amount, self.intent.token_in_address)

    @property
    def token_out_amount_scaled(self) -> int:
        return self._scaled(self.intent.token_out_amount, self.intent.token_out_address)

    def get_quote(self) -> TradeQuote:
        return TradeQuote(
            maximum_in_amount=self.get_max_in(self.token_in_amount_scaled),
            minimum_out_amount=self.get_min_out(self.token_out_amount_scaled),
        )

    async def trade(
        self, success_callback: Callable[[], None] | None = None
    ) -> asyncio.Task[bool] | None:
        """Submit the current trade.

        Returns:
            Task resolving to True once the transaction is confirmed (False if
            it failed), or None when submission itself failed. Submission
            failures are recorded in ``state.submission_error`` and never
            retried.
        """
        self.trading = True
        self.confirming = True
        self.execution_status = ExecutionStatus.CONFIRMING
        self.state.submission_error = None

        intent = self.intent
        intent.wrap_kind = get_wrap_kind(
            intent.token_in_address, intent.token_out_address, self.network
        )
        action = {
            WrapKind.WRAP: TransactionAction.WRAP,
            WrapKind.UNWRAP: TransactionAction.UNWRAP,
        }.get(intent.wrap_kind, TransactionAction.TRADE)

        try:
            tx = await self._submit(action)
        except Exception as err:
            logger.error(
                "trade_submission_failed",
                action=action.value,
                token_in=intent.token_in_address[-8:],
                token_out=intent.token_out_address[-8:],
                exc_info=True,
            )
            self.state.submission_error = str(err)
            self.trading = False
            self.confirming = False
            self.execution_status = ExecutionStatus.IDLE
            return None

        task = self._handle_submitted(tx, action)
        if success_callback is not None:
            success_callback()
        return task

    async def _submit(self, action: TransactionAction) -> TransactionHandle:
        intent = self.intent
        token_in, token_out = intent.token_in_address, intent.token_out_address
        decimals_in = self._decimals(token_in)
        decimals_out = self._decimals(token_out)
        if decimals_in is None or decimals_out is None:
            raise ExecutionFailed("Token metadata unavailable")
        if self.confirmations is None:
            raise ExecutionFailed("No confirmation listener configured")

        amount_in = to_fixed_point(intent.token_in_amount, decimals_in)

        if action is not TransactionAction.TRADE:
            if self.wrap_executor is None:
                raise ExecutionFailed("No wrap executor configured")
            if action is TransactionAction.WRAP:
                return await self.wrap_executor.wrap(
                    self.network.key, self.signer, token_out, amount_in
                )
            return await self.wrap_executor.unwrap(
                self.network.key, self.signer, token_in, amount_in
            )

        if self.swap_executor is None:
            raise ExecutionFailed("No swap executor configured")
        if not self.route.has_route:
            raise ExecutionFailed("No route available for this trade")

        amount_out = to_fixed_point(intent.token_out_amount, decimals_out)
        if intent.exact_in:
            return await self.swap_executor.swap_in(
                self.route, amount_in, self.get_min_out(amount_out)
            )
        return await self.swap_executor.swap_out(
            self.route, self.get_max_in(amount_in), amount_out
        )

    def _summary(self, action: TransactionAction) -> str:
        intent = self.intent
        digits = self.config.display_significant_digits

        def fmt(amount: str) -> str:
            try:
                return format_for_display(amount, digits)
            except InvalidAmount:
                return amount

        token_in = self.tokens.get_token(intent.token_in_address)
        token_out = self.tokens.get_token(intent.token_out_address)
        symbol_in = token_in.symbol if token_in is not None else intent.token_in_address
        symbol_out = token_out.symbol if token_out is not None else intent.token_out_address

        if action is TransactionAction.TRADE:
            return (
                f"{fmt(intent.token_in_amount)} {symbol_in} -> "
                f"{fmt(intent.token_out_amount)} {symbol_out}"
            )
        verb = "Wrap" if action is TransactionAction.WRAP else "Unwrap"
        return f"{verb} {fmt(intent.token_in_amount)} {symbol_in} to {symbol_out}"

    def _handle_submitted(
        self, tx: TransactionHandle, action: TransactionAction
    ) -> asyncio.Task[bool]:
        self.confirming = False
        self.execution_status = ExecutionStatus.SUBMITTED
        intent = self.intent

        self.transactions.add_transaction(
            TransactionRecord(
                id=tx.hash,
                action=action,
                summary=self._summary(action),
                details=TradeDetails(
                    token_in=self.tokens.get_token(intent.token_in_address),
                    token_out=self.tokens.get_token(intent.token_out_address),
                    token_in_address=intent.token_in_address,
                    token_out_address=intent.token_out_address,
                    token_in_amount=intent.token_in_amount,
                    token_out_amount=intent.token_out_amount,
                    exact_in=intent.exact_in,
                    quote=self.get_quote(),
                    price_impact=self.price_impact,
                    slippage_buffer_rate=intent.slippage_buffer_rate,
                ),
            )
        )
        logger.info("trade_submitted", tx_hash=tx.hash, action=action.value)

        self._confirmation_task = asyncio.create_task(self._track_confirmation(tx))
        return self._confirmation_task

    async def _track_confirmation(self, tx: TransactionHandle) -> bool:
        assert self.confirmations is not None
        try:
            confirmed = await self.confirmations.wait_for_confirmation(tx)
        except Exception:
            logger.warning("confirmation_tracking_failed", tx_hash=tx.hash, exc_info=True)
            confirmed = False

        self.trading = False
        if confirmed:
            self.latest_tx_hash = tx.hash
            self.execution_status = ExecutionStatus.CONFIRMED
            self.transactions.update_status(tx.hash, TransactionStatus.CONFIRMED)
            logger.info("trade_confirmed", tx_hash=tx.hash)
        else:
            self.execution_status = ExecutionStatus.FAILED
            self.transactions.update_status(tx.hash, TransactionStatus.FAILED)
            logger.warning("trade_failed", tx_hash=tx.hash)
        return confirmed
