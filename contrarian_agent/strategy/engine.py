"""
Contrarian decision engine.

Per token: Idle -> Cooling -> Idle. A detected trade (or a batch's net
pressure) arrives as (detected side, magnitude); the engine places an order
on the opposite side sized as magnitude x fraction, unless the token is
still inside its cooldown window or another execution is in flight.
TradeState is written only after the gateway call succeeds.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.execution.gateway import ExecutionGateway, ExecutionGuard, place_order
from contrarian_agent.solana_listener.models import Side

logger = get_logger(__name__)

DEFAULT_COOLDOWN_MS = 1000.0
DEFAULT_OPPOSITE_FRACTION = 0.10


def _now_ms() -> float:
    return time.time() * 1000.0


@dataclass(frozen=True)
class TradeState:
    last_direction: Side
    last_size_sol: float
    last_timestamp_ms: float


class TradeStateRegistry:
    """TradeState per token address; shared by reference with the engines that use it."""

    def __init__(self) -> None:
        self._states: dict[str, TradeState] = {}

    def get(self, token_address: str) -> TradeState | None:
        return self._states.get(token_address)

    def put(self, token_address: str, state: TradeState) -> None:
        self._states[token_address] = state

    def __contains__(self, token_address: object) -> bool:
        return token_address in self._states

    def __len__(self) -> int:
        return len(self._states)


class SizingPolicy(Protocol):
    def fraction_for(self, order_side: Side) -> float: ...


@dataclass(frozen=True)
class FixedSizing:
    """Same fraction for both sides (per-trade path)."""

    fraction: float = DEFAULT_OPPOSITE_FRACTION

    def fraction_for(self, order_side: Side) -> float:
        return self.fraction


@dataclass(frozen=True)
class DirectionalSizing:
    """Separate fractions (0-1) for buy and sell orders (batch path)."""

    buy_fraction: float
    sell_fraction: float

    def __post_init__(self) -> None:
        for name in ("buy_fraction", "sell_fraction"):
            value = getattr(self, name)
            if not (0.0 <= value <= 1.0):
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

    @classmethod
    def from_percentages(cls, buy_pct: float, sell_pct: float) -> "DirectionalSizing":
        return cls(buy_fraction=buy_pct / 100.0, sell_fraction=sell_pct / 100.0)

    def fraction_for(self, order_side: Side) -> float:
        return self.buy_fraction if order_side is Side.BUY else self.sell_fraction


class DecisionStatus(str, Enum):
    PLACED = "placed"
    IGNORED = "ignored"
    COOLDOWN = "cooldown"
    IN_FLIGHT = "in_flight"
    FAILED = "failed"


@dataclass(frozen=True)
class Decision:
    status: DecisionStatus
    order_side: Side = Side.NONE
    size_sol: float = 0.0
    error: str | None = None

    @property
    def placed(self) -> bool:
        return self.status is DecisionStatus.PLACED


class ContrarianDecisionEngine:
    """
    Turns detected pressure into an opposite order for one or more tokens.

    cooldown_ms=None disables the cooldown guard. guard, when given, is the
    process-wide "one execution in flight" flag.
    """

    def __init__(
        self,
        gateway: ExecutionGateway,
        registry: TradeStateRegistry,
        sizing: SizingPolicy | None = None,
        *,
        cooldown_ms: float | None = DEFAULT_COOLDOWN_MS,
        slippage_bps: int = 100,
        guard: ExecutionGuard | None = None,
        clock_ms: Callable[[], float] = _now_ms,
    ) -> None:
        self._gateway = gateway
        self._registry = registry
        self._sizing = sizing or FixedSizing()
        self._cooldown_ms = cooldown_ms
        self._slippage_bps = slippage_bps
        self._guard = guard
        self._clock_ms = clock_ms

    @property
    def registry(self) -> TradeStateRegistry:
        return self._registry

    def in_cooldown(self, token_address: str, now_ms: float) -> bool:
        if self._cooldown_ms is None:
            return False
        state = self._registry.get(token_address)
        return state is not None and now_ms - state.last_timestamp_ms <= self._cooldown_ms

    async def react(
        self,
        token_address: str,
        detected_side: Side,
        magnitude: float,
        now_ms: float | None = None,
    ) -> Decision:
        """Place the contrarian order for (detected_side, magnitude) if the guards allow it."""
        if detected_side is Side.NONE or magnitude <= 0:
            return Decision(DecisionStatus.IGNORED)
        now = self._clock_ms() if now_ms is None else now_ms
        if self.in_cooldown(token_address, now):
            logger.info(
                "contrarian_cooldown",
                token_id=token_address,
                detected_side=detected_side.value,
                magnitude=magnitude,
            )
            return Decision(DecisionStatus.COOLDOWN)

        order_side = detected_side.opposite()
        size = abs(magnitude * self._sizing.fraction_for(order_side))
        if size <= 0:
            return Decision(DecisionStatus.IGNORED, order_side)

        if self._guard is not None and not self._guard.try_acquire():
            logger.info("contrarian_execution_in_flight", token_id=token_address, order_side=order_side.value)
            return Decision(DecisionStatus.IN_FLIGHT, order_side, size)
        try:
            logger.info(
                "contrarian_order",
                token_id=token_address,
                detected_side=detected_side.value,
                magnitude=round(magnitude, 9),
                order_side=order_side.value,
                size_sol=round(size, 9),
            )
            await place_order(self._gateway, order_side, token_address, size, self._slippage_bps)
        except Exception as e:
            logger.error(
                "execution_failed",
                token_id=token_address,
                order_side=order_side.value,
                size_sol=round(size, 9),
                error=str(e),
            )
            return Decision(DecisionStatus.FAILED, order_side, size, error=str(e))
        finally:
            if self._guard is not None:
                self._guard.release()

        self._registry.put(token_address, TradeState(order_side, size, now))
        logger.info(
            "contrarian_executed",
            token_id=token_address,
            order_side=order_side.value,
            size_sol=round(size, 9),
        )
        return Decision(DecisionStatus.PLACED, order_side, size)
