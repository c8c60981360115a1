"""
Execution gateway: the narrow interface through which orders are placed.

The swap SDKs live outside this package. A gateway exposes buy/sell for a
token and a SOL amount; returning means success, raising means failure.
DryRunGateway only logs and records; HttpExecutionGateway forwards the order
to an external execution service.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.core.exceptions import ExecutionError
from contrarian_agent.solana_listener.models import Side

logger = get_logger(__name__)


class ExecutionGateway(Protocol):
    async def buy(self, token_address: str, sol_amount: float, slippage_bps: int) -> None: ...

    async def sell(self, token_address: str, sol_amount: float, slippage_bps: int) -> None: ...


async def place_order(
    gateway: ExecutionGateway,
    side: Side,
    token_address: str,
    sol_amount: float,
    slippage_bps: int,
) -> None:
    """Dispatch to gateway.buy / gateway.sell by side."""
    if side is Side.BUY:
        await gateway.buy(token_address, sol_amount, slippage_bps)
    elif side is Side.SELL:
        await gateway.sell(token_address, sol_amount, slippage_bps)
    else:
        raise ValueError("cannot place an order with side none")


@dataclass(frozen=True)
class PlacedOrder:
    side: Side
    token_address: str
    sol_amount: float
    slippage_bps: int


class DryRunGateway:
    """Logs orders instead of sending them; keeps them in .orders."""

    def __init__(self) -> None:
        self.orders: list[PlacedOrder] = []

    async def buy(self, token_address: str, sol_amount: float, slippage_bps: int) -> None:
        self._record(Side.BUY, token_address, sol_amount, slippage_bps)

    async def sell(self, token_address: str, sol_amount: float, slippage_bps: int) -> None:
        self._record(Side.SELL, token_address, sol_amount, slippage_bps)

    def _record(self, side: Side, token_address: str, sol_amount: float, slippage_bps: int) -> None:
        self.orders.append(PlacedOrder(side, token_address, sol_amount, slippage_bps))
        logger.info(
            "dry_run_order",
            side=side.value,
            token_id=token_address,
            sol_amount=round(sol_amount, 9),
            slippage_bps=slippage_bps,
        )


class HttpExecutionGateway:
    """POSTs {side, token, sol_amount, slippage_bps} to an execution service."""

    def __init__(
        self,
        url: str,
        *,
        timeout_sec: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not url.strip():
            raise ValueError("execution url must be non-empty")
        self._url = url.strip()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def buy(self, token_address: str, sol_amount: float, slippage_bps: int) -> None:
        await self._submit(Side.BUY, token_address, sol_amount, slippage_bps)

    async def sell(self, token_address: str, sol_amount: float, slippage_bps: int) -> None:
        await self._submit(Side.SELL, token_address, sol_amount, slippage_bps)

    async def _submit(self, side: Side, token_address: str, sol_amount: float, slippage_bps: int) -> None:
        body: dict[str, Any] = {
            "side": side.value,
            "token": token_address,
            "sol_amount": sol_amount,
            "slippage_bps": slippage_bps,
        }
        try:
            resp = await self._client.post(self._url, json=body)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ExecutionError(f"{side.value} order for {token_address} failed: {e}") from e
        logger.info(
            "order_submitted",
            side=side.value,
            token_id=token_address,
            sol_amount=round(sol_amount, 9),
            status_code=resp.status_code,
        )


class ExecutionGuard:
    """
    One order placement in flight at a time.

    try_acquire is non-blocking: a busy guard means the caller drops its
    order. wait_idle lets shutdown wait for the current placement to finish.
    """

    def __init__(self) -> None:
        self._busy = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def busy(self) -> bool:
        return self._busy

    def try_acquire(self) -> bool:
        if self._busy:
            return False
        self._busy = True
        self._idle.clear()
        return True

    def release(self) -> None:
        self._busy = False
        self._idle.set()

    async def wait_idle(self) -> None:
        await self._idle.wait()
