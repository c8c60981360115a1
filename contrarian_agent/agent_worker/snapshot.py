"""
One-shot snapshot: confirm the token's bonding curve, log its reserves and
rewrite the ledger with the most recent trades, newest first.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.config.settings import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MIN_SOL_AMOUNT,
    DEFAULT_RPC_REQUEST_DELAY_SEC,
    DEFAULT_SNAPSHOT_SIGNATURE_LIMIT,
)
from contrarian_agent.core import Diagnostics, SkipReason
from contrarian_agent.ledger import TradeLedger
from contrarian_agent.solana_listener import SignatureSource, TradeRecord, TransactionFetcher, classify_user_delta
from contrarian_agent.solana_listener.bonding_curve import fetch_bonding_curve
from contrarian_agent.solana_listener.listener import _short
from contrarian_agent.solana_listener.rpc import RetryingRpcClient, SolanaRpcClient

logger = get_logger(__name__)


async def collect_recent_trades(
    token_address: str,
    source: SignatureSource,
    fetcher: TransactionFetcher,
    *,
    limit: int = DEFAULT_SNAPSHOT_SIGNATURE_LIMIT,
    count: int = DEFAULT_BATCH_SIZE,
    min_sol_amount: float = DEFAULT_MIN_SOL_AMOUNT,
    request_delay_sec: float = DEFAULT_RPC_REQUEST_DELAY_SEC,
    diagnostics: Diagnostics | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> list[TradeRecord]:
    """Up to `count` trades from the latest `limit` signatures, newest first."""
    diagnostics = diagnostics or Diagnostics("snapshot")
    signatures = await source.list_signatures(token_address, limit)
    trades: list[TradeRecord] = []
    for info in signatures:
        if len(trades) >= count:
            break
        if request_delay_sec > 0:
            await sleep(request_delay_sec)
        try:
            tx = await fetcher.fetch_transaction(info.signature)
        except Exception as e:
            diagnostics.record_error(e, signature=_short(info.signature))
            continue
        if tx is None:
            diagnostics.record(SkipReason.MISSING_DATA, signature=_short(info.signature))
            continue
        diagnostics.processed()
        result = classify_user_delta(tx, token_address, min_sol_amount=min_sol_amount)
        if result.trade is None:
            diagnostics.record(result.skip_reason, signature=_short(info.signature), detail=result.detail)
            continue
        diagnostics.trade()
        trades.append(result.trade)
    diagnostics.log_summary("snapshot_summary")
    return sorted(trades, key=lambda r: r.timestamp, reverse=True)[:count]


async def take_snapshot(
    token_address: str,
    rpc: SolanaRpcClient,
    retry: RetryingRpcClient,
    source: SignatureSource,
    fetcher: TransactionFetcher,
    ledger: TradeLedger,
    **options: Any,
) -> list[TradeRecord]:
    """
    Check the bonding curve (StartupFatalError if absent), then rewrite the
    ledger with the newest trades. options go to collect_recent_trades.
    """
    await fetch_bonding_curve(rpc, retry, token_address)
    trades = await collect_recent_trades(token_address, source, fetcher, **options)
    if not trades:
        logger.info("snapshot_no_trades", token_id=token_address)
        return []
    ledger.write_all(trades)
    for trade in trades:
        logger.info(
            "snapshot_trade",
            timestamp=trade.timestamp.isoformat(),
            side=trade.side.value,
            sol_amount=trade.sol_amount,
            token_amount=trade.token_amount,
            signature=_short(trade.signature),
        )
    return trades
