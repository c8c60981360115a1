"""
Order watcher: keeps a token's trade ledger current.

Startup scans up to initial_signature_limit signatures and rewrites the
ledger with the newest batch_size trades (oldest first). After that each
cycle lists the latest monitor_signature_limit signatures, classifies the
new ones oldest first and appends them to the ledger batch_size at a time.
Per-signature failures are counted and never stop the session.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.agent_worker.runtime import run_periodic
from contrarian_agent.config.settings import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_INITIAL_SIGNATURE_LIMIT,
    DEFAULT_MIN_SOL_AMOUNT,
    DEFAULT_MONITOR_SIGNATURE_LIMIT,
    DEFAULT_RPC_REQUEST_DELAY_SEC,
    DEFAULT_WATCH_INTERVAL_SEC,
)
from contrarian_agent.core import Diagnostics, PersistenceError, SkipReason
from contrarian_agent.ledger import SignatureDedupStore, TradeLedger
from contrarian_agent.solana_listener import (
    SignatureInfo,
    SignatureSource,
    TradeRecord,
    TransactionFetcher,
    classify_user_delta,
)
from contrarian_agent.solana_listener.listener import _short
from contrarian_agent.solana_listener.parser import USER_DELTA

logger = get_logger(__name__)


class OrderWatcher:
    """Initial collection plus incremental monitoring for one token."""

    def __init__(
        self,
        token_address: str,
        source: SignatureSource,
        fetcher: TransactionFetcher,
        ledger: TradeLedger,
        dedup: SignatureDedupStore | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        initial_limit: int = DEFAULT_INITIAL_SIGNATURE_LIMIT,
        monitor_limit: int = DEFAULT_MONITOR_SIGNATURE_LIMIT,
        min_sol_amount: float = DEFAULT_MIN_SOL_AMOUNT,
        request_delay_sec: float = DEFAULT_RPC_REQUEST_DELAY_SEC,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.token_address = token_address
        self._source = source
        self._fetcher = fetcher
        self._ledger = ledger
        self.dedup = dedup or SignatureDedupStore()
        self._batch_size = batch_size
        self._initial_limit = initial_limit
        self._monitor_limit = monitor_limit
        self._min_sol = min_sol_amount
        self._request_delay = request_delay_sec
        self._sleep = sleep
        self._pending: list[TradeRecord] = []
        self._failed: dict[str, int] = {}
        self._handled_time: int | None = None
        self._stop: asyncio.Event | None = None
        self.initialized = False
        self.diagnostics = Diagnostics("order_watcher")

    @property
    def pending(self) -> list[TradeRecord]:
        return list(self._pending)

    def _stopping(self) -> bool:
        return self._stop is not None and self._stop.is_set()

    async def _classify(self, info: SignatureInfo, context: str) -> tuple[TradeRecord | None, int | None]:
        """
        Fetch and classify one signature. Returns (trade or None, block time).
        Skips are recorded here; exceptions propagate to the caller.
        """
        if self._request_delay > 0:
            await self._sleep(self._request_delay)
        tx = await self._fetcher.fetch_transaction(info.signature, context)
        if tx is None:
            self.diagnostics.record(SkipReason.MISSING_DATA, signature=_short(info.signature), detail="no metadata")
            return None, info.block_time
        self.diagnostics.processed()
        result = classify_user_delta(tx, self.token_address, min_sol_amount=self._min_sol)
        block_time = tx.block_time if tx.block_time is not None else info.block_time
        if result.trade is None:
            self.diagnostics.record(result.skip_reason, signature=_short(info.signature), detail=result.detail)
            return None, block_time
        self.diagnostics.trade()
        trade = result.trade
        logger.info(
            "trade_detected",
            token_id=self.token_address,
            strategy=USER_DELTA,
            side=trade.side.value,
            sol_amount=round(trade.sol_amount, 9),
            token_amount=trade.token_amount,
            signature=_short(trade.signature),
        )
        return trade, block_time

    async def initial_collection(self) -> list[TradeRecord]:
        """
        Scan history until batch_size trades are found, then rewrite the ledger
        with them in ascending time order. Returns the trades written.
        """
        self.diagnostics.reset()
        signatures = await self._source.list_signatures(self.token_address, self._initial_limit)
        logger.info("initial_scan_started", token_id=self.token_address, signatures=len(signatures))
        found: list[TradeRecord] = []
        total = len(signatures)
        for i, info in enumerate(signatures, start=1):
            if len(found) >= self._batch_size or self._stopping():
                break
            context = f"fetching transaction {_short(info.signature)} ({i}/{total})"
            try:
                trade, _ = await self._classify(info, context)
            except Exception as e:
                self.diagnostics.record_error(e, signature=_short(info.signature))
                continue
            self.dedup.mark_processed(info.signature)
            if trade is not None:
                found.append(trade)

        self.initialized = True
        trades = sorted(found, key=lambda r: r.timestamp)[-self._batch_size:]
        if not trades:
            logger.info("initial_scan_no_trades", token_id=self.token_address)
        else:
            try:
                self._ledger.write_all(trades)
            except PersistenceError as e:
                self.diagnostics.record_error(e, path=str(self._ledger.path))
                trades = []
            else:
                self.dedup.advance(trades[-1].timestamp.timestamp())
        self.diagnostics.log_summary("initial_scan_summary")
        return trades

    async def monitor_once(self) -> int:
        """
        One monitoring cycle. Returns how many new signatures were handled.

        A signature whose fetch failed stays outstanding until a later cycle
        handles it. While any is outstanding, last_processed_time stays below
        the oldest one and pending trades newer than it are held back from the
        ledger, so the retried trade still lands in time order. A failed
        signature that drops out of the listing is given up.
        """
        self.diagnostics.reset()
        signatures = await self._source.list_signatures(self.token_address, self._monitor_limit)
        self._abandon_unlisted({s.signature for s in signatures})
        fresh = [s for s in signatures if self.dedup.is_new(s.signature, s.block_time)]
        if not fresh:
            self._advance()
            return 0

        handled = 0
        for info in reversed(fresh):
            if self._stopping():
                break
            if self.dedup.has_processed(info.signature):
                continue
            try:
                trade, block_time = await self._classify(info, f"fetching transaction {_short(info.signature)}")
            except Exception as e:
                self.diagnostics.record_error(e, signature=_short(info.signature))
                self._failed[info.signature] = info.block_time or 0
                continue
            self._failed.pop(info.signature, None)
            self.dedup.mark_processed(info.signature)
            handled += 1
            if block_time is not None:
                self._handled_time = max(self._handled_time or block_time, block_time)
            if trade is not None:
                self._pending.append(trade)
                if len(self._pending) >= self._batch_size:
                    self.flush()

        if len(self._pending) >= self._batch_size:
            self.flush()
        self._advance()
        self.diagnostics.log_summary("monitor_summary")
        return handled

    def _oldest_failed(self) -> int | None:
        return min(self._failed.values()) if self._failed else None

    def _abandon_unlisted(self, listed: set[str]) -> None:
        for signature in [s for s in self._failed if s not in listed]:
            del self._failed[signature]
            logger.warning("failed_signature_abandoned", token_id=self.token_address, signature=_short(signature))

    def _advance(self) -> None:
        """Move last_processed_time up to the newest handled block below any outstanding failure."""
        if self._handled_time is None:
            return
        floor = self._oldest_failed()
        if floor is None:
            self.dedup.advance(self._handled_time)
            self._handled_time = None
        elif self._handled_time < floor:
            self.dedup.advance(self._handled_time)
        else:
            self.dedup.advance(floor - 1)

    def flush(self) -> int:
        """
        Append pending trades (sorted by time) to the ledger. Trades newer than
        an outstanding failed signature stay pending, as does everything on a
        write failure.
        """
        floor = self._oldest_failed()
        batch = sorted(self._pending, key=lambda r: r.timestamp)
        if floor is not None:
            batch = [r for r in batch if r.timestamp.timestamp() <= floor]
        if not batch:
            return 0
        try:
            self._ledger.append(batch)
        except PersistenceError as e:
            self.diagnostics.record_error(e, path=str(self._ledger.path), pending=len(self._pending))
            return 0
        written = {id(r) for r in batch}
        self._pending = [r for r in self._pending if id(r) not in written]
        logger.info("ledger_batch_appended", token_id=self.token_address, trades=len(batch), held=len(self._pending))
        return len(batch)

    async def run(self, stop: asyncio.Event, interval_sec: float = DEFAULT_WATCH_INTERVAL_SEC) -> None:
        self._stop = stop

        async def cycle() -> None:
            if not self.initialized:
                await self.initial_collection()
            else:
                await self.monitor_once()

        await run_periodic("order_watcher", cycle, stop, interval_sec)
