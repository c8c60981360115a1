"""
Async runtime shared by the long-running sessions.

Each session exposes run(stop) and loops on its own interval until the stop
event is set. SIGINT/SIGTERM set that event; sessions finish the cycle they
are in (including an order placement already in flight) and return, after
which the RPC and execution clients are closed.
"""

from __future__ import annotations

import asyncio
import signal
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.config import Settings
from contrarian_agent.execution import DryRunGateway, ExecutionGateway, ExecutionGuard, HttpExecutionGateway
from contrarian_agent.solana_listener import (
    RetryingRpcClient,
    RetryPolicy,
    SignatureSource,
    SolanaRpcClient,
    TransactionFetcher,
)

logger = get_logger(__name__)

Cycle = Callable[[], Awaitable[Any]]


@dataclass
class RpcToolkit:
    """RPC client plus the retrying wrappers built on it for one process."""

    rpc: SolanaRpcClient
    retry: RetryingRpcClient
    source: SignatureSource
    fetcher: TransactionFetcher


@asynccontextmanager
async def open_rpc(settings: Settings) -> AsyncIterator[RpcToolkit]:
    policy = RetryPolicy(max_attempts=settings.rpc_max_retries, base_delay_sec=settings.rpc_base_delay_sec)
    retry = RetryingRpcClient(policy)
    async with SolanaRpcClient(settings.rpc_url, timeout_sec=settings.rpc_timeout_sec) as rpc:
        yield RpcToolkit(rpc, retry, SignatureSource(rpc, retry), TransactionFetcher(rpc, retry))


def build_gateway(settings: Settings) -> ExecutionGateway:
    """HTTP gateway when EXECUTION_API_URL is set, otherwise a dry-run gateway that only logs."""
    if settings.execution_api_url:
        logger.info("execution_gateway", kind="http", url=settings.execution_api_url)
        return HttpExecutionGateway(settings.execution_api_url, timeout_sec=settings.rpc_timeout_sec)
    logger.info("execution_gateway", kind="dry_run")
    return DryRunGateway()


async def close_gateway(gateway: ExecutionGateway) -> None:
    aclose = getattr(gateway, "aclose", None)
    if aclose is not None:
        await aclose()


async def wait_for_stop(stop: asyncio.Event, timeout: float) -> bool:
    """Sleep up to timeout seconds; True if stop was set meanwhile."""
    if stop.is_set():
        return True
    try:
        await asyncio.wait_for(stop.wait(), timeout=max(0.0, timeout))
    except asyncio.TimeoutError:
        return False
    return True


async def run_periodic(name: str, cycle: Cycle, stop: asyncio.Event, interval_sec: float) -> int:
    """
    Run cycle() every interval_sec until stop is set. A failing cycle is
    logged and the loop continues. Returns the number of cycles run.
    """
    cycles = 0
    logger.info("session_started", session=name, interval_sec=interval_sec)
    while not stop.is_set():
        cycles += 1
        try:
            await cycle()
        except Exception as e:
            logger.exception("session_cycle_failed", session=name, cycle=cycles, error=str(e))
        if await wait_for_stop(stop, interval_sec):
            break
    logger.info("session_stopped", session=name, cycles=cycles)
    return cycles


def install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def request_shutdown(signame: str) -> None:
        if not stop.is_set():
            logger.info("shutdown_requested", signal=signame)
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_shutdown, sig.name)
        except (NotImplementedError, RuntimeError, ValueError):
            # Windows or not the main thread
            pass


async def run_until_stopped(
    *runners: Callable[[asyncio.Event], Awaitable[Any]],
    guard: ExecutionGuard | None = None,
    stop: asyncio.Event | None = None,
) -> None:
    """Run every session until stop (or a signal), then wait for any in-flight order."""
    stop = stop or asyncio.Event()
    install_signal_handlers(stop)
    try:
        await asyncio.gather(*(runner(stop) for runner in runners))
    finally:
        stop.set()
        if guard is not None and guard.busy:
            logger.info("shutdown_waiting_for_execution")
            await guard.wait_idle()
        logger.info("shutdown_complete")
