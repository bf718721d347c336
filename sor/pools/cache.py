"""Pool data cache.

Holds the most recently fetched pool snapshot. A refresh builds a complete
new ``PoolSnapshot`` and swaps the reference in one assignment, so readers
holding an older snapshot keep a consistent view and nobody ever observes a
half-updated one.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import structlog

from sor.errors import ExternalQueryFailed
from sor.pools.types import PoolSnapshot

if TYPE_CHECKING:
    from sor.interfaces import PoolSource

logger = structlog.get_logger()


class PoolDataCache:
    """Cache of the latest pool snapshot fetched from a ``PoolSource``.

    Args:
        source: Where pools are fetched from
    """

    def __init__(self, source: PoolSource) -> None:
        self._source = source
        self._snapshot: PoolSnapshot | None = None
        self._generation = 0
        self._refresh_lock = asyncio.Lock()

    @property
    def generation(self) -> int:
        """Generation of the current snapshot (0 before the first fetch)."""
        return self._snapshot.generation if self._snapshot is not None else 0

    def has_data(self) -> bool:
        """True once a non-empty snapshot has been fetched."""
        return self._snapshot is not None and len(self._snapshot) > 0

    def current_snapshot(self) -> PoolSnapshot:
        """The snapshot consumers should bind a query to.

        Returns an empty generation-0 snapshot before the first fetch.
        """
        if self._snapshot is None:
            return PoolSnapshot(pools=(), generation=0)
        return self._snapshot

    async def refresh(self) -> PoolSnapshot:
        """Fetch the full pool set and replace the current snapshot.

        Overlapping refreshes are serialized so generations stay ordered. On
        failure the previous snapshot keeps being served.

        Raises:
            ExternalQueryFailed: If the source fails
        """
        async with self._refresh_lock:
            started = time.perf_counter()
            try:
                pools = await self._source.fetch_pools()
            except Exception as err:
                logger.warning(
                    "pool_refresh_failed",
                    generation=self.generation,
                    exc_info=True,
                )
                if isinstance(err, ExternalQueryFailed):
                    raise
                raise ExternalQueryFailed(f"Pool fetch failed: {err}") from err

            self._generation += 1
            snapshot = PoolSnapshot(
                pools=tuple(pools),
                generation=self._generation,
                fetched_at=time.time(),
            )
            self._snapshot = snapshot
            logger.info(
                "pools_fetched",
                pool_count=len(snapshot),
                generation=snapshot.generation,
                elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            return snapshot
