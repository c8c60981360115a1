"""
Batch aggregation over the ledger tail.

The trailing window of N records (5 by default) is identified by its boundary
records; each identity is acted on at most once. A window with net buying
(sum of buy SOL minus sell SOL > 0) triggers the engine with buy pressure,
so a sell is placed; net selling does the reverse.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.core.recency import RecencySet
from contrarian_agent.solana_listener.models import Side, TradeRecord, format_timestamp
from contrarian_agent.strategy.engine import ContrarianDecisionEngine, Decision

logger = get_logger(__name__)

DEFAULT_WINDOW_SIZE = 5
SEEN_CAPACITY = 100
SEEN_KEEP = 50
SIGNATURE_PREFIX_LEN = 8


@dataclass(frozen=True)
class BatchIdentity:
    first_timestamp: str
    last_timestamp: str
    first_signature_prefix: str
    last_signature_prefix: str

    @classmethod
    def of(cls, window: Sequence[TradeRecord]) -> "BatchIdentity":
        first, last = window[0], window[-1]
        return cls(
            first_timestamp=format_timestamp(first.timestamp),
            last_timestamp=format_timestamp(last.timestamp),
            first_signature_prefix=first.signature[:SIGNATURE_PREFIX_LEN],
            last_signature_prefix=last.signature[:SIGNATURE_PREFIX_LEN],
        )

    def __str__(self) -> str:
        return "-".join(
            (self.first_timestamp, self.last_timestamp, self.first_signature_prefix, self.last_signature_prefix)
        )


def net_volume(window: Sequence[TradeRecord]) -> float:
    """Buy SOL positive, sell SOL negative."""
    return sum(record.signed_sol for record in window)


class BatchStatus(str, Enum):
    WAITING = "waiting"
    DUPLICATE = "duplicate"
    FLAT = "flat"
    TRIGGERED = "triggered"


@dataclass(frozen=True)
class BatchOutcome:
    status: BatchStatus
    identity: BatchIdentity | None = None
    net_volume: float = 0.0
    decision: Decision | None = None


class BatchAggregator:
    """Feeds each new trailing window's net volume to the decision engine once."""

    def __init__(
        self,
        token_address: str,
        engine: ContrarianDecisionEngine,
        *,
        window_size: int = DEFAULT_WINDOW_SIZE,
    ) -> None:
        if window_size < 1:
            raise ValueError("window_size must be at least 1")
        self._token = token_address
        self._engine = engine
        self._window_size = window_size
        self._seen: RecencySet[BatchIdentity] = RecencySet(SEEN_CAPACITY, keep=SEEN_KEEP)

    @property
    def window_size(self) -> int:
        return self._window_size

    def has_seen(self, identity: BatchIdentity) -> bool:
        return identity in self._seen

    async def consider_window(self, records: Sequence[TradeRecord]) -> BatchOutcome:
        """Evaluate the last window_size records of `records`."""
        if len(records) < self._window_size:
            return BatchOutcome(BatchStatus.WAITING)
        window = list(records[-self._window_size:])
        identity = BatchIdentity.of(window)
        if identity in self._seen:
            return BatchOutcome(BatchStatus.DUPLICATE, identity)

        net = net_volume(window)
        logger.info(
            "batch_detected",
            token_id=self._token,
            batch_id=str(identity),
            trades=[f"{r.side.value.upper()} {r.sol_amount:.4f}" for r in window],
            net_volume=round(net, 9),
        )
        if net == 0:
            self._seen.add(identity)
            return BatchOutcome(BatchStatus.FLAT, identity, net)

        pressure = Side.BUY if net > 0 else Side.SELL
        decision = await self._engine.react(self._token, pressure, abs(net))
        self._seen.add(identity)
        return BatchOutcome(BatchStatus.TRIGGERED, identity, net, decision)
