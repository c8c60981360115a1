"""
Per-trade contrarian session.

Polls the token's newest signatures, classifies each new transaction with
the pool-delta strategy and lets the decision engine answer every detected
trade with an opposite order (subject to the per-token cooldown). The first
poll only records what already happened; reactions start from the second.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.agent_worker.runtime import run_periodic
from contrarian_agent.config.settings import (
    DEFAULT_MONITOR_SIGNATURE_LIMIT,
    DEFAULT_RPC_REQUEST_DELAY_SEC,
    DEFAULT_STREAM_INTERVAL_SEC,
)
from contrarian_agent.core import Diagnostics, ErrorCategory, SkipReason
from contrarian_agent.ledger import SignatureDedupStore
from contrarian_agent.solana_listener import (
    Side,
    SignatureSource,
    TransactionFetcher,
    classify_pool_delta_tx,
)
from contrarian_agent.solana_listener.listener import _short
from contrarian_agent.solana_listener.parser import POOL_DELTA, RAYDIUM_AUTHORITY, WSOL_MINT
from contrarian_agent.strategy import ContrarianDecisionEngine, Decision, DecisionStatus

logger = get_logger(__name__)


class TradeStreamWatcher:
    def __init__(
        self,
        token_address: str,
        source: SignatureSource,
        fetcher: TransactionFetcher,
        engine: ContrarianDecisionEngine,
        dedup: SignatureDedupStore | None = None,
        *,
        limit: int = DEFAULT_MONITOR_SIGNATURE_LIMIT,
        pool_authority: str = RAYDIUM_AUTHORITY,
        native_mint: str = WSOL_MINT,
        request_delay_sec: float = DEFAULT_RPC_REQUEST_DELAY_SEC,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.token_address = token_address
        self._source = source
        self._fetcher = fetcher
        self._engine = engine
        self.dedup = dedup or SignatureDedupStore()
        self._limit = limit
        self._pool_authority = pool_authority
        self._native_mint = native_mint
        self._request_delay = request_delay_sec
        self._sleep = sleep
        self._primed = False
        self.diagnostics = Diagnostics("trade_stream")

    async def poll_once(self) -> list[Decision]:
        """List signatures, react to the new ones (oldest first). Returns the engine decisions."""
        self.diagnostics.reset()
        signatures = await self._source.list_signatures(self.token_address, self._limit)
        if not self._primed:
            for info in signatures:
                self.dedup.mark_processed(info.signature)
                self.dedup.advance(info.block_time)
            self._primed = True
            logger.info("trade_stream_primed", token_id=self.token_address, known=len(signatures))
            return []

        decisions: list[Decision] = []
        for info in reversed(signatures):
            if self.dedup.has_processed(info.signature):
                continue
            if self._request_delay > 0:
                await self._sleep(self._request_delay)
            try:
                tx = await self._fetcher.fetch_transaction(info.signature)
            except Exception as e:
                self.diagnostics.record_error(e, signature=_short(info.signature))
                continue
            self.dedup.mark_processed(info.signature)
            if tx is None:
                self.diagnostics.record(SkipReason.MISSING_DATA, signature=_short(info.signature))
                continue
            self.diagnostics.processed()
            self.dedup.advance(tx.block_time)
            delta = classify_pool_delta_tx(
                tx,
                self.token_address,
                pool_authority=self._pool_authority,
                native_mint=self._native_mint,
            )
            if delta.side is Side.NONE:
                self.diagnostics.record(SkipReason.NOT_APPLICABLE, signature=_short(info.signature))
                continue
            self.diagnostics.trade()
            logger.info(
                "pool_trade_detected",
                token_id=self.token_address,
                strategy=POOL_DELTA,
                side=delta.side.value,
                sol_amount=round(delta.magnitude, 9),
                signature=_short(info.signature),
            )
            decision = await self._engine.react(self.token_address, delta.side, delta.magnitude)
            if decision.status is DecisionStatus.FAILED:
                self.diagnostics.record(
                    ErrorCategory.EXECUTION_FAILED,
                    signature=_short(info.signature),
                    order_side=decision.order_side.value,
                    error=decision.error,
                )
            decisions.append(decision)
        if any(self.diagnostics.summary().values()):
            self.diagnostics.log_summary("trade_stream_summary")
        return decisions

    async def run(self, stop: asyncio.Event, interval_sec: float = DEFAULT_STREAM_INTERVAL_SEC) -> None:
        await run_periodic("trade_stream", self.poll_once, stop, interval_sec)
