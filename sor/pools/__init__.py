"""Pool data: records, snapshots, sources and the snapshot cache."""

from sor.pools.cache import PoolDataCache
from sor.pools.parsing import parse_pool, parse_pools
from sor.pools.sources import StaticPoolSource
from sor.pools.subgraph import SubgraphPoolSource
from sor.pools.types import PoolRecord, PoolSnapshot, PoolToken

__all__ = [
    "PoolDataCache",
    "PoolRecord",
    "PoolSnapshot",
    "PoolToken",
    "StaticPoolSource",
    "SubgraphPoolSource",
    "parse_pool",
    "parse_pools",
]
