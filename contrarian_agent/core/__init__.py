"""
Core utilities: exceptions, diagnostics counters and bounded recency sets
shared by the listener, ledger and strategy layers.
"""

from contrarian_agent.core.diagnostics import Diagnostics, ErrorCategory, SkipReason
from contrarian_agent.core.exceptions import (
    AgentError,
    ExecutionError,
    ExhaustedRetries,
    PersistenceError,
    RateLimitedError,
    RpcError,
    StartupFatalError,
)
from contrarian_agent.core.recency import RecencySet

__all__ = [
    "AgentError",
    "Diagnostics",
    "ErrorCategory",
    "ExecutionError",
    "ExhaustedRetries",
    "PersistenceError",
    "RateLimitedError",
    "RecencySet",
    "RpcError",
    "SkipReason",
    "StartupFatalError",
]
