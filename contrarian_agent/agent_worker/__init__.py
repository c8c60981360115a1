"""
Long-running sessions (order watcher, market maker, trade stream) and the
one-shot snapshot, plus the asyncio runtime that drives them.
"""

from contrarian_agent.agent_worker.market_maker import MarketMaker
from contrarian_agent.agent_worker.runtime import (
    RpcToolkit,
    build_gateway,
    close_gateway,
    open_rpc,
    run_periodic,
    run_until_stopped,
)
from contrarian_agent.agent_worker.snapshot import collect_recent_trades, take_snapshot
from contrarian_agent.agent_worker.stream import TradeStreamWatcher
from contrarian_agent.agent_worker.watcher import OrderWatcher

__all__ = [
    "MarketMaker",
    "OrderWatcher",
    "RpcToolkit",
    "TradeStreamWatcher",
    "build_gateway",
    "close_gateway",
    "collect_recent_trades",
    "open_rpc",
    "run_periodic",
    "run_until_stopped",
    "take_snapshot",
]
