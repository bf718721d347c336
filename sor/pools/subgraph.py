"""Subgraph pool source.

Fetches pools from a Balancer-style GraphQL subgraph over HTTP.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from sor.errors import ExternalQueryFailed
from sor.pools.parsing import parse_pools
from sor.pools.types import PoolRecord

logger = structlog.get_logger()

POOLS_QUERY = """
query Pools($first: Int!, $minLiquidity: BigDecimal!) {
  pools(
    first: $first
    where: { swapEnabled: true, totalShares_gt: "0", totalLiquidity_gt: $minLiquidity }
    orderBy: totalLiquidity
    orderDirection: desc
  ) {
    id
    address
    poolType
    swapFee
    tokens {
      address
      balance
      decimals
      weight
    }
  }
}
"""

DEFAULT_TIMEOUT_SECONDS = 30.0


class SubgraphPoolSource:
    """Pool source backed by a GraphQL subgraph.

    Args:
        url: Subgraph endpoint
        first: Maximum number of pools to request (ordered by liquidity)
        min_liquidity: Skip pools below this total liquidity (fiat)
        client: Optional preconfigured client; one is created per fetch otherwise
    """

    def __init__(
        self,
        url: str,
        first: int = 1000,
        min_liquidity: str = "0.000001",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.first = first
        self.min_liquidity = min_liquidity
        self._client = client

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.url, json=payload)
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS) as client:
            return await client.post(self.url, json=payload)

    async def fetch_pools(self) -> list[PoolRecord]:
        """Fetch and parse pools.

        Raises:
            ExternalQueryFailed: On transport errors, HTTP errors or GraphQL errors
        """
        payload = {
            "query": POOLS_QUERY,
            "variables": {"first": self.first, "minLiquidity": self.min_liquidity},
        }
        try:
            response = await self._post(payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as err:
            raise ExternalQueryFailed(f"Subgraph request failed: {err}") from err
        except ValueError as err:
            raise ExternalQueryFailed(f"Subgraph returned invalid JSON: {err}") from err

        if body.get("errors"):
            raise ExternalQueryFailed(f"Subgraph returned errors: {body['errors']}")

        raw_pools = (body.get("data") or {}).get("pools")
        if raw_pools is None:
            raise ExternalQueryFailed("Subgraph response has no pools field")

        pools = parse_pools(raw_pools)
        logger.debug(
            "subgraph_pools_parsed",
            url=self.url,
            received=len(raw_pools),
            parsed=len(pools),
        )
        return pools
