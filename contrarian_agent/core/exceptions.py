"""
Application-level exceptions.

RpcError covers transport and JSON-RPC failures; RateLimitedError is the only
retryable one. PersistenceError wraps ledger I/O. StartupFatalError ends a
session before its loop starts. ExecutionError is raised by gateways.
"""

from __future__ import annotations


class AgentError(Exception):
    """Base class for contrarian agent errors."""


class RpcError(AgentError):
    """Solana RPC transport or JSON-RPC error."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class RateLimitedError(RpcError):
    """RPC endpoint answered with HTTP 429 / rate-limit error."""


class ExhaustedRetries(RpcError):
    """Rate-limit retries used up for one operation."""

    def __init__(self, context: str, attempts: int) -> None:
        super().__init__(f"Failed after {attempts} retries while {context}")
        self.context = context
        self.attempts = attempts


class PersistenceError(AgentError):
    """Trade ledger could not be read or written."""


class StartupFatalError(AgentError):
    """Required on-chain account missing; the session cannot start."""


class ExecutionError(AgentError):
    """Order placement failed at the execution gateway."""
