"""Pool dataclasses.

Pools are immutable: a refresh produces new records inside a new snapshot
rather than mutating balances in place.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from sor.models.types import normalize_address


@dataclass(frozen=True)
class PoolToken:
    """Token held by a pool.

    Attributes:
        address: Token address (lowercase)
        balance: Balance in the token's native decimals
        decimals: Token decimals
        weight: Normalized weight for weighted pools (None otherwise)
    """

    address: str
    balance: int
    decimals: int = 18
    weight: Decimal | None = None


@dataclass(frozen=True)
class PoolRecord:
    """A liquidity pool as fetched from the pool data source.

    Attributes:
        id: Pool id (32-byte hex string used by the vault)
        address: Pool contract address
        pool_type: Pool type name ("Weighted", "Stable", ...)
        tokens: Token balances, in pool order
        swap_fee: Swap fee as decimal (e.g., 0.003 for 0.3%)
    """

    id: str
    address: str
    pool_type: str
    tokens: tuple[PoolToken, ...]
    swap_fee: Decimal

    def get_token(self, token: str) -> PoolToken | None:
        """Get the pool's entry for a token (case-insensitive)."""
        token_lower = normalize_address(token)
        for pool_token in self.tokens:
            if pool_token.address == token_lower:
                return pool_token
        return None

    def has_pair(self, token_a: str, token_b: str) -> bool:
        return self.get_token(token_a) is not None and self.get_token(token_b) is not None


@dataclass(frozen=True)
class PoolSnapshot:
    """An immutable set of pools fetched together.

    Attributes:
        pools: Pools in source order
        generation: Monotonically increasing refresh counter (starts at 1)
        fetched_at: Unix timestamp of the fetch
    """

    pools: tuple[PoolRecord, ...]
    generation: int
    fetched_at: float = 0.0
    _by_id: dict[str, PoolRecord] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._by_id.update({pool.id: pool for pool in self.pools})

    def __len__(self) -> int:
        return len(self.pools)

    def get(self, pool_id: str) -> PoolRecord | None:
        return self._by_id.get(pool_id)

    def pools_for_pair(self, token_a: str, token_b: str) -> list[PoolRecord]:
        """All pools holding both tokens."""
        return [pool for pool in self.pools if pool.has_pair(token_a, token_b)]

    def pools_by_id(self, pool_ids: Iterable[str]) -> list[PoolRecord]:
        """Pools for ``pool_ids`` in the given order; ids not in this snapshot are skipped."""
        return [pool for pool_id in pool_ids if (pool := self.get(pool_id)) is not None]
