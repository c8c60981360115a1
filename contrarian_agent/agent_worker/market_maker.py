"""
Market maker session: re-reads the trade ledger every tick and hands the
trailing window to the BatchAggregator.
"""

from __future__ import annotations

import asyncio

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.agent_worker.runtime import run_periodic
from contrarian_agent.config.settings import DEFAULT_BATCH_INTERVAL_SEC
from contrarian_agent.core import Diagnostics, ErrorCategory, PersistenceError
from contrarian_agent.ledger import TradeLedger
from contrarian_agent.strategy import BatchAggregator, BatchOutcome, DecisionStatus

logger = get_logger(__name__)


class MarketMaker:
    def __init__(self, token_address: str, ledger: TradeLedger, aggregator: BatchAggregator) -> None:
        self.token_address = token_address
        self._ledger = ledger
        self._aggregator = aggregator
        self._missing_logged = False
        self.diagnostics = Diagnostics("market_maker")

    async def tick(self) -> BatchOutcome | None:
        """
        Read the ledger and evaluate its last window. None when nothing could be
        read. Counts are per tick; a summary is logged for ticks that counted
        something, so idle ticks stay quiet.
        """
        self.diagnostics.reset()
        if not self._ledger.exists():
            if not self._missing_logged:
                logger.warning("trade_history_missing", token_id=self.token_address, path=str(self._ledger.path))
                self._missing_logged = True
            return None
        self._missing_logged = False
        try:
            records = self._ledger.read_all()
        except PersistenceError as e:
            self.diagnostics.record_error(e, path=str(self._ledger.path))
            self.diagnostics.log_summary("market_maker_summary")
            return None
        outcome = await self._aggregator.consider_window(records)
        if outcome.decision is not None:
            logger.info(
                "batch_handled",
                token_id=self.token_address,
                batch_id=str(outcome.identity),
                decision=outcome.decision.status.value,
                order_side=outcome.decision.order_side.value,
                size_sol=round(outcome.decision.size_sol, 9),
            )
            if outcome.decision.status is DecisionStatus.FAILED:
                self.diagnostics.record(
                    ErrorCategory.EXECUTION_FAILED,
                    batch_id=str(outcome.identity),
                    order_side=outcome.decision.order_side.value,
                    error=outcome.decision.error,
                )
            self.diagnostics.log_summary("market_maker_summary")
        return outcome

    async def run(self, stop: asyncio.Event, interval_sec: float = DEFAULT_BATCH_INTERVAL_SEC) -> None:
        await run_periodic("market_maker", self.tick, stop, interval_sec)
