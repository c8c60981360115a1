"""
Contrarian strategy: batch aggregation over the trade ledger and the
per-token decision engine that places opposite-direction orders.
"""

from contrarian_agent.strategy.batch import (
    BatchAggregator,
    BatchIdentity,
    BatchOutcome,
    BatchStatus,
    net_volume,
)
from contrarian_agent.strategy.engine import (
    ContrarianDecisionEngine,
    Decision,
    DecisionStatus,
    DirectionalSizing,
    FixedSizing,
    TradeState,
    TradeStateRegistry,
)

__all__ = [
    "BatchAggregator",
    "BatchIdentity",
    "BatchOutcome",
    "BatchStatus",
    "ContrarianDecisionEngine",
    "Decision",
    "DecisionStatus",
    "DirectionalSizing",
    "FixedSizing",
    "TradeState",
    "TradeStateRegistry",
    "net_volume",
]
