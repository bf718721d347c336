"""Quote API application.

Serves ``POST /{network}/quote`` from a pool cache shared by every request.
With SOR_PREFETCH_POOLS set, pools are fetched at startup so the first
quote does not pay for the pool fetch; a failed prefetch is logged and the
first quote retries it.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import Depends, FastAPI

from sor.api.endpoints import get_quote_service, router
from sor.errors import ExternalQueryFailed
from sor.service import QuoteService, get_default_quote_service

logger = structlog.get_logger()

HOST = os.environ.get("SOR_HOST", "0.0.0.0")
PORT = int(os.environ.get("SOR_PORT", "8000"))
DEBUG = os.environ.get("SOR_DEBUG", "false").lower() in ("true", "1", "yes")
PREFETCH_POOLS = os.environ.get("SOR_PREFETCH_POOLS", "false").lower() in ("true", "1", "yes")


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    if PREFETCH_POOLS:
        try:
            await get_default_quote_service().ensure_pools()
        except ExternalQueryFailed:
            logger.warning("pool_prefetch_failed", exc_info=True)
    yield


app = FastAPI(
    title="Smart Order Router",
    description="Quotes token swaps across liquidity pools",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/health")
async def health(service: QuoteService = Depends(get_quote_service)) -> dict[str, object]:
    """Liveness plus the state of the shared pool cache."""
    return {
        "status": "ok",
        "network": service.network.key,
        "poolsLoaded": service.routing.has_pool_data(),
        "poolGeneration": service.routing.cache.generation,
    }


def run() -> None:
    """Serve the quote API with uvicorn.

    Environment:
    - SOR_HOST / SOR_PORT: bind address (default 0.0.0.0:8000)
    - SOR_DEBUG: auto-reload on code changes
    - SOR_PREFETCH_POOLS: fetch pools before accepting requests
    - SOR_POOLS_FILE / SOR_SUBGRAPH_URL: where pools come from
    """
    uvicorn.run(
        "sor.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
