"""Pool parsing.

Converts pool payloads in the subgraph's shape (balances as human-readable
decimal strings) into ``PoolRecord``s. Invalid pools are logged and skipped
rather than failing the whole fetch.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog

from sor.amounts import to_fixed_point
from sor.errors import InvalidAmount
from sor.models.types import is_valid_address, normalize_address
from sor.pools.types import PoolRecord, PoolToken

logger = structlog.get_logger()


def _parse_decimal(raw: Any, pool_id: str, field: str) -> Decimal | None:
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        logger.warning("pool_invalid_decimal", pool_id=pool_id, field=field, raw=raw)
        return None
    if not value.is_finite() or value < 0:
        logger.warning("pool_invalid_decimal", pool_id=pool_id, field=field, raw=raw)
        return None
    return value


def _parse_token(data: dict[str, Any], pool_id: str) -> PoolToken | None:
    address = data.get("address", "")
    if not is_valid_address(address):
        logger.warning("pool_invalid_token_address", pool_id=pool_id, address=address)
        return None

    try:
        decimals = int(data.get("decimals", 18))
    except (TypeError, ValueError):
        logger.warning("pool_invalid_token_decimals", pool_id=pool_id, token=address)
        return None

    try:
        balance = to_fixed_point(str(data.get("balance", "0")), decimals)
    except InvalidAmount:
        logger.warning(
            "pool_invalid_balance",
            pool_id=pool_id,
            token=address,
            raw_balance=data.get("balance"),
        )
        return None

    weight = None
    if data.get("weight") is not None:
        weight = _parse_decimal(data["weight"], pool_id, "weight")
        if weight is None:
            return None
        if weight == 0:
            logger.warning(
                "pool_invalid_weight", pool_id=pool_id, token=address, raw=data["weight"]
            )
            return None

    return PoolToken(
        address=normalize_address(address),
        balance=balance,
        decimals=decimals,
        weight=weight,
    )


def parse_pool(data: dict[str, Any]) -> PoolRecord | None:
    """Parse a single pool payload.

    Returns:
        PoolRecord, or None if the payload is malformed
    """
    pool_id = data.get("id")
    if not pool_id:
        logger.warning("pool_missing_id", raw=data)
        return None

    swap_fee = _parse_decimal(data.get("swapFee", "0"), pool_id, "swapFee")
    if swap_fee is None or swap_fee >= 1:
        logger.warning("pool_invalid_fee", pool_id=pool_id, raw=data.get("swapFee"))
        return None

    tokens = []
    for token_data in data.get("tokens", []):
        token = _parse_token(token_data, pool_id)
        if token is None:
            return None
        tokens.append(token)

    if len(tokens) < 2:
        logger.debug("pool_too_few_tokens", pool_id=pool_id, token_count=len(tokens))
        return None

    return PoolRecord(
        id=pool_id,
        address=normalize_address(data.get("address", pool_id[:42])),
        pool_type=data.get("poolType", "Weighted"),
        tokens=tuple(tokens),
        swap_fee=swap_fee,
    )


def parse_pools(payloads: Iterable[dict[str, Any]]) -> list[PoolRecord]:
    """Parse many pool payloads, skipping invalid ones."""
    pools = []
    for data in payloads:
        pool = parse_pool(data)
        if pool is not None:
            pools.append(pool)
    return pools
