"""Pydantic models for the quote API."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from sor.models.route import RouteResult, SwapDirection
from sor.models.types import Address, DecimalAmount


class QuoteRequest(BaseModel):
    """A request to quote a trade."""

    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")
    amount: DecimalAmount = Field(description="Amount of the fixed side, as a decimal string.")
    kind: SwapDirection = Field(default=SwapDirection.EXACT_IN)
    slippage: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        le=Decimal("0.5"),
        description="Slippage buffer rate used for the execution limits.",
    )

    model_config = {"populate_by_name": True}


class SwapResponse(BaseModel):
    pool_id: str = Field(alias="poolId")
    asset_in_index: int = Field(alias="assetInIndex")
    asset_out_index: int = Field(alias="assetOutIndex")
    amount: str

    model_config = {"populate_by_name": True}


class QuoteResponse(BaseModel):
    """Quote for a trade with its slippage-bounded execution limits."""

    token_in: str = Field(alias="tokenIn")
    token_out: str = Field(alias="tokenOut")
    token_in_amount: str = Field(alias="tokenInAmount")
    token_out_amount: str = Field(alias="tokenOutAmount")
    kind: SwapDirection
    wrap_kind: str = Field(alias="wrapKind")
    has_route: bool = Field(alias="hasRoute")
    return_amount: str = Field(alias="returnAmount")
    price_impact: str = Field(alias="priceImpact")
    high_price_impact: bool = Field(alias="highPriceImpact")
    maximum_in_amount: str = Field(alias="maximumInAmount")
    minimum_out_amount: str = Field(alias="minimumOutAmount")
    swaps: list[SwapResponse] = Field(default_factory=list)
    token_addresses: list[str] = Field(default_factory=list, alias="tokenAddresses")
    market_sp: str | None = Field(default=None, alias="marketSpNormalised")
    pool_generation: int = Field(default=0, alias="poolGeneration")

    model_config = {"populate_by_name": True}

    @staticmethod
    def swaps_from_route(route: RouteResult) -> list[SwapResponse]:
        return [
            SwapResponse(
                pool_id=step.pool_id,
                asset_in_index=step.asset_in_index,
                asset_out_index=step.asset_out_index,
                amount=str(step.amount),
            )
            for step in route.swaps
        ]
