"""In-process pool sources."""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

from sor.pools.parsing import parse_pools
from sor.pools.types import PoolRecord


class StaticPoolSource:
    """Serves a fixed, replaceable list of pools.

    Useful for tests and for deployments that ship a pool dump.
    """

    def __init__(self, pools: Sequence[PoolRecord] | None = None) -> None:
        self._pools = list(pools or [])

    def set_pools(self, pools: Sequence[PoolRecord]) -> None:
        self._pools = list(pools)

    async def fetch_pools(self) -> list[PoolRecord]:
        return list(self._pools)

    @classmethod
    def from_file(cls, path: str | Path) -> StaticPoolSource:
        """Load pools from a JSON file shaped like a subgraph response.

        Accepts either ``{"pools": [...]}`` or a bare list of pools.
        """
        with open(path) as f:
            data = json.load(f)
        payloads = data["pools"] if isinstance(data, dict) else data
        return cls(parse_pools(payloads))
