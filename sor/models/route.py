"""Route data structures produced by the routing engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from sor.models.types import normalize_address


class SwapDirection(str, Enum):
    """Which side of the trade the user fixed."""

    EXACT_IN = "exactIn"
    EXACT_OUT = "exactOut"


@dataclass(frozen=True)
class SwapStep:
    """A single pool hop in a batch swap.

    Attributes:
        pool_id: Pool the hop trades against
        asset_in_index: Index of the hop's input token in ``RouteResult.token_addresses``
        asset_out_index: Index of the hop's output token
        amount: Fixed-side amount for this hop in the token's native decimals
            (0 for hops chained off the previous hop's result)
        user_data: Opaque per-hop payload forwarded to the vault
    """

    pool_id: str
    asset_in_index: int
    asset_out_index: int
    amount: int
    user_data: str = "0x"


@dataclass(frozen=True)
class RouteResult:
    """Best route for a trade, as returned by the routing engine.

    Attributes:
        token_in: Input token address (lowercase)
        token_out: Output token address (lowercase)
        swaps: Ordered pool hops; empty iff no route exists
        token_addresses: Tokens referenced by ``swaps``, index-aligned
        swap_amount: Fixed-side amount the route was computed for
        return_amount: Amount of the non-fixed side (0 iff no route)
        return_decimals: Decimals of ``return_amount``
        market_sp_normalised: Spot price of the route as tokenIn per tokenOut,
            excluding the trade's own slippage
        pool_ids: Pools referenced by ``swaps``
        snapshot_generation: Pool snapshot the route was computed against
    """

    token_in: str
    token_out: str
    swaps: tuple[SwapStep, ...] = ()
    token_addresses: tuple[str, ...] = ()
    swap_amount: int = 0
    return_amount: int = 0
    return_decimals: int = 18
    market_sp_normalised: str = "0"
    pool_ids: tuple[str, ...] = field(default=())
    snapshot_generation: int = 0

    def __post_init__(self) -> None:
        if bool(self.swaps) != (self.return_amount > 0):
            raise ValueError("A route has swaps exactly when its return amount is positive")
        object.__setattr__(self, "token_in", normalize_address(self.token_in))
        object.__setattr__(self, "token_out", normalize_address(self.token_out))
        object.__setattr__(
            self, "token_addresses", tuple(normalize_address(a) for a in self.token_addresses)
        )

    @property
    def has_route(self) -> bool:
        return bool(self.swaps)

    @classmethod
    def empty(
        cls,
        token_in: str = "0x",
        token_out: str = "0x",
        return_decimals: int = 18,
        snapshot_generation: int = 0,
    ) -> RouteResult:
        """A result representing "no liquidity found"."""
        return cls(
            token_in=token_in,
            token_out=token_out,
            return_decimals=return_decimals,
            snapshot_generation=snapshot_generation,
        )

    def index_of(self, token: str) -> int:
        """Index of a token in ``token_addresses`` (-1 if absent)."""
        token_norm = normalize_address(token)
        try:
            return self.token_addresses.index(token_norm)
        except ValueError:
            return -1
