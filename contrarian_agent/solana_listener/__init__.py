"""
Solana listener package.

Polls a token's signatures over JSON-RPC, fetches and validates each
transaction and classifies it into a directional trade.
"""

from contrarian_agent.solana_listener.listener import SignatureSource, TransactionFetcher
from contrarian_agent.solana_listener.models import (
    Side,
    SignatureInfo,
    TokenBalanceSnapshot,
    TradeRecord,
    TransactionMetadata,
)
from contrarian_agent.solana_listener.parser import (
    POOL_DELTA,
    USER_DELTA,
    Classification,
    Outcome,
    PoolDelta,
    classify_pool_delta,
    classify_pool_delta_tx,
    classify_user_delta,
)
from contrarian_agent.solana_listener.rpc import RetryingRpcClient, RetryPolicy, SolanaRpcClient

__all__ = [
    "POOL_DELTA",
    "USER_DELTA",
    "Classification",
    "Outcome",
    "PoolDelta",
    "RetryPolicy",
    "RetryingRpcClient",
    "Side",
    "SignatureInfo",
    "SignatureSource",
    "SolanaRpcClient",
    "TokenBalanceSnapshot",
    "TradeRecord",
    "TransactionFetcher",
    "TransactionMetadata",
    "classify_pool_delta",
    "classify_pool_delta_tx",
    "classify_user_delta",
]
