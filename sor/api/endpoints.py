"""API endpoints for the quote service."""

import os

import structlog
from fastapi import APIRouter, Depends, HTTPException

from sor.errors import ExternalQueryFailed, InvalidAmount
from sor.models.quote import QuoteRequest, QuoteResponse
from sor.service import QuoteService, get_default_quote_service

logger = structlog.get_logger()

router = APIRouter()

# Networks this service has pool data for
# Configurable via environment variable SOR_SUPPORTED_NETWORKS (comma-separated)
SUPPORTED_NETWORKS = set(os.environ.get("SOR_SUPPORTED_NETWORKS", "mainnet").split(","))


def get_quote_service() -> QuoteService:
    """Dependency provider for the quote service.

    Override this in tests to inject a service:
        app.dependency_overrides[get_quote_service] = lambda: service
    """
    return get_default_quote_service()


@router.post("/{network}/quote", response_model_exclude_none=True)
async def quote(
    network: str,
    request: QuoteRequest,
    service: QuoteService = Depends(get_quote_service),
) -> QuoteResponse:
    """Quote a trade on a network.

    Error Handling:
        - Unsupported network: 404
        - Unknown token or malformed amount: 422
        - Pool data or quote unavailable: 503
    """
    if network not in SUPPORTED_NETWORKS or network != service.network.key:
        logger.warning(
            "unsupported_network",
            network=network,
            supported_networks=sorted(SUPPORTED_NETWORKS),
        )
        raise HTTPException(status_code=404, detail=f"Unsupported network: {network}")

    logger.info(
        "quote_requested",
        network=network,
        token_in=request.token_in,
        token_out=request.token_out,
        kind=request.kind.value,
    )

    try:
        return await service.quote(request)
    except InvalidAmount as err:
        raise HTTPException(status_code=422, detail=str(err)) from err
    except ExternalQueryFailed as err:
        logger.warning("quote_unavailable", network=network, error=str(err))
        raise HTTPException(status_code=503, detail="Quote unavailable") from err
