"""Transaction history for submitted trades."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

import structlog

from sor.models.tokens import Token
from sor.models.trade import TradeQuote

logger = structlog.get_logger()


class TransactionAction(str, Enum):
    TRADE = "trade"
    WRAP = "wrap"
    UNWRAP = "unwrap"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class TradeDetails:
    """What was traded, frozen at submission time."""

    token_in: Token | None
    token_out: Token | None
    token_in_address: str
    token_out_address: str
    token_in_amount: str
    token_out_amount: str
    exact_in: bool
    quote: TradeQuote
    price_impact: Decimal
    slippage_buffer_rate: Decimal


@dataclass
class TransactionRecord:
    id: str
    action: TransactionAction
    summary: str
    details: TradeDetails
    status: TransactionStatus = TransactionStatus.PENDING
    added_at: float = field(default_factory=time.time)


class TransactionLog:
    """Ordered record of submitted transactions, keyed by hash."""

    def __init__(self) -> None:
        self._records: dict[str, TransactionRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> list[TransactionRecord]:
        return list(self._records.values())

    def get(self, tx_id: str) -> TransactionRecord | None:
        return self._records.get(tx_id)

    def add_transaction(self, record: TransactionRecord) -> None:
        if record.id in self._records:
            raise ValueError(f"Transaction {record.id} already recorded")
        self._records[record.id] = record
        logger.info(
            "transaction_added",
            tx_hash=record.id,
            action=record.action.value,
            summary=record.summary,
        )

    def update_status(self, tx_id: str, status: TransactionStatus) -> None:
        record = self._records.get(tx_id)
        if record is None:
            raise KeyError(tx_id)
        record.status = status
        logger.info("transaction_status_updated", tx_hash=tx_id, status=status.value)
