"""
Solana JSON-RPC transport and rate-limit retry.

SolanaRpcClient posts JSON-RPC bodies over a shared httpx.AsyncClient and maps
HTTP 429 / rate-limit JSON-RPC errors to RateLimitedError. RetryingRpcClient
wraps any awaitable operation with bounded exponential backoff that only
applies to rate limiting; every other failure propagates on the first try.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.core.exceptions import ExhaustedRetries, RateLimitedError, RpcError

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_COMMITMENT = "confirmed"
# JSON-RPC error codes some providers use for throttling
_RATE_LIMIT_CODES = frozenset({429, -32429})


@dataclass(frozen=True)
class RetryPolicy:
    """Stateless retry settings, applied per call."""

    max_attempts: int = 5
    base_delay_sec: float = 2.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_sec < 0:
            raise ValueError("base_delay_sec must be non-negative")

    def delay_for(self, attempt_index: int) -> float:
        """Wait before retry after the attempt with 0-based index attempt_index."""
        return self.base_delay_sec * (self.backoff_multiplier ** attempt_index)


def is_rate_limited(exc: BaseException) -> bool:
    """True if exc signals RPC throttling: HTTP 429 or a throttling JSON-RPC code. Message text is not inspected."""
    if isinstance(exc, RateLimitedError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 429
    if isinstance(exc, RpcError) and not isinstance(exc, ExhaustedRetries):
        return exc.code in _RATE_LIMIT_CODES
    return False


class RetryingRpcClient:
    """Runs remote read operations with rate-limit backoff (no jitter)."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def execute(self, operation: Callable[[], Awaitable[T]], context: str) -> T:
        """
        Await operation() up to policy.max_attempts times.

        Rate-limited failures wait base_delay * 2**attempt and retry; any other
        exception is re-raised immediately. Raises ExhaustedRetries(context)
        once every attempt was rate limited.
        """
        attempts = self._policy.max_attempts
        for attempt in range(attempts):
            try:
                return await operation()
            except Exception as e:
                if not is_rate_limited(e):
                    raise
                logger.info(
                    "rpc_rate_limited",
                    context=context,
                    attempt=attempt + 1,
                    max_attempts=attempts,
                )
                if attempt + 1 >= attempts:
                    break
                delay = self._policy.delay_for(attempt)
                logger.info("rpc_retry_wait", context=context, wait_sec=delay)
                await self._sleep(delay)
        logger.error("rpc_retries_exhausted", context=context, max_attempts=attempts)
        raise ExhaustedRetries(context, attempts)


class SolanaRpcClient:
    """Minimal async JSON-RPC client for the read methods the agent needs."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_sec: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self._rpc_url = rpc_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))
        self._request_id = 0

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def call(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call; raise RateLimitedError / RpcError on failure."""
        body = {"jsonrpc": "2.0", "id": self._next_id(), "method": method, "params": params}
        try:
            resp = await self._client.post(self._rpc_url, json=body)
        except httpx.HTTPError as e:
            raise RpcError(f"Solana RPC transport error: {e}") from e
        if resp.status_code == 429:
            raise RateLimitedError(f"Solana RPC 429 Too Many Requests ({method})", code=429)
        try:
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPStatusError, ValueError) as e:
            raise RpcError(f"Solana RPC bad response: {e}") from e
        if "error" in data:
            err = data["error"] or {}
            code = err.get("code") if isinstance(err, dict) else None
            message = err.get("message", err) if isinstance(err, dict) else err
            if code in _RATE_LIMIT_CODES:
                raise RateLimitedError(f"Solana RPC rate limited: {message}", code=code)
            raise RpcError(f"Solana RPC error: {message} (code={code})", code=code)
        return data.get("result")

    async def get_signatures_for_address(
        self,
        address: str,
        *,
        limit: int,
        commitment: str = DEFAULT_COMMITMENT,
        before: str | None = None,
    ) -> list[dict[str, Any]]:
        opts: dict[str, Any] = {"limit": limit, "commitment": commitment}
        if before is not None:
            opts["before"] = before
        result = await self.call("getSignaturesForAddress", [address, opts])
        return result if isinstance(result, list) else []

    async def get_parsed_transaction(
        self,
        signature: str,
        *,
        commitment: str = DEFAULT_COMMITMENT,
        max_supported_transaction_version: int = 0,
    ) -> dict[str, Any] | None:
        result = await self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": commitment,
                    "maxSupportedTransactionVersion": max_supported_transaction_version,
                },
            ],
        )
        return result if isinstance(result, dict) else None

    async def get_account_info(
        self,
        address: str,
        *,
        commitment: str = DEFAULT_COMMITMENT,
    ) -> dict[str, Any] | None:
        result = await self.call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": commitment}],
        )
        if not isinstance(result, dict):
            return None
        value = result.get("value")
        return value if isinstance(value, dict) else None
