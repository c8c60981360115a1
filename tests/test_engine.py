"""
Tests for ContrarianDecisionEngine: opposite-side sizing, per-token cooldown,
state updates only after successful execution, and the in-flight guard.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from contrarian_agent.core import ExecutionError
from contrarian_agent.execution import DryRunGateway, ExecutionGuard
from contrarian_agent.solana_listener import Side
from contrarian_agent.strategy import (
    ContrarianDecisionEngine,
    DecisionStatus,
    DirectionalSizing,
    FixedSizing,
    TradeState,
    TradeStateRegistry,
)

TOKEN_MINT = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
OTHER_MINT = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"


def _engine(gateway=None, **kwargs) -> ContrarianDecisionEngine:
    return ContrarianDecisionEngine(gateway or DryRunGateway(), TradeStateRegistry(), **kwargs)


def test_detected_buy_places_tenth_sized_sell():
    gateway = DryRunGateway()
    engine = _engine(gateway)
    decision = asyncio.run(engine.react(TOKEN_MINT, Side.BUY, 10.0, now_ms=1_000_000.0))
    assert decision.status is DecisionStatus.PLACED
    assert decision.order_side is Side.SELL
    assert decision.size_sol == pytest.approx(1.0)
    assert len(gateway.orders) == 1
    assert gateway.orders[0].side is Side.SELL
    assert gateway.orders[0].sol_amount == pytest.approx(1.0)
    assert engine.registry.get(TOKEN_MINT) == TradeState(Side.SELL, pytest.approx(1.0), 1_000_000.0)


def test_detected_sell_places_buy():
    gateway = DryRunGateway()
    decision = asyncio.run(_engine(gateway).react(TOKEN_MINT, Side.SELL, 2.0, now_ms=0.0))
    assert decision.order_side is Side.BUY
    assert gateway.orders[0].side is Side.BUY
    assert gateway.orders[0].sol_amount == pytest.approx(0.2)


def test_cooldown_suppresses_then_releases():
    gateway = DryRunGateway()
    engine = _engine(gateway)

    async def run():
        first = await engine.react(TOKEN_MINT, Side.BUY, 10.0, now_ms=10_000.0)
        inside = await engine.react(TOKEN_MINT, Side.SELL, 5.0, now_ms=10_500.0)
        after = await engine.react(TOKEN_MINT, Side.SELL, 5.0, now_ms=11_500.0)
        return first, inside, after

    first, inside, after = asyncio.run(run())
    assert first.placed
    assert inside.status is DecisionStatus.COOLDOWN
    assert after.placed
    assert [o.side for o in gateway.orders] == [Side.SELL, Side.BUY]
    assert engine.registry.get(TOKEN_MINT).last_timestamp_ms == 11_500.0


def test_cooldown_is_per_token():
    gateway = DryRunGateway()
    engine = _engine(gateway)

    async def run():
        await engine.react(TOKEN_MINT, Side.BUY, 1.0, now_ms=0.0)
        return await engine.react(OTHER_MINT, Side.BUY, 1.0, now_ms=100.0)

    assert asyncio.run(run()).placed
    assert len(engine.registry) == 2


def test_cooldown_disabled_with_none():
    engine = _engine(cooldown_ms=None)

    async def run():
        await engine.react(TOKEN_MINT, Side.BUY, 1.0, now_ms=0.0)
        return await engine.react(TOKEN_MINT, Side.BUY, 1.0, now_ms=1.0)

    assert asyncio.run(run()).placed


def test_side_none_or_zero_magnitude_ignored():
    gateway = DryRunGateway()
    engine = _engine(gateway)
    assert asyncio.run(engine.react(TOKEN_MINT, Side.NONE, 5.0)).status is DecisionStatus.IGNORED
    assert asyncio.run(engine.react(TOKEN_MINT, Side.BUY, 0.0)).status is DecisionStatus.IGNORED
    assert gateway.orders == []
    assert TOKEN_MINT not in engine.registry


def test_failed_execution_leaves_state_untouched():
    gateway = AsyncMock()
    gateway.sell.side_effect = ExecutionError("swap failed")
    engine = _engine(gateway)
    decision = asyncio.run(engine.react(TOKEN_MINT, Side.BUY, 10.0, now_ms=5_000.0))
    assert decision.status is DecisionStatus.FAILED
    assert engine.registry.get(TOKEN_MINT) is None
    gateway.sell.assert_awaited_once_with(TOKEN_MINT, pytest.approx(1.0), 100)


def test_failed_execution_does_not_start_cooldown():
    gateway = AsyncMock()
    gateway.sell.side_effect = [ExecutionError("swap failed"), None]
    engine = _engine(gateway)

    async def run():
        await engine.react(TOKEN_MINT, Side.BUY, 10.0, now_ms=5_000.0)
        return await engine.react(TOKEN_MINT, Side.BUY, 10.0, now_ms=5_100.0)

    assert asyncio.run(run()).placed


def test_busy_guard_drops_order_and_guard_released_after():
    guard = ExecutionGuard()
    gateway = DryRunGateway()
    engine = _engine(gateway, guard=guard)
    assert guard.try_acquire()
    assert asyncio.run(engine.react(TOKEN_MINT, Side.BUY, 1.0, now_ms=0.0)).status is DecisionStatus.IN_FLIGHT
    guard.release()
    assert asyncio.run(engine.react(TOKEN_MINT, Side.BUY, 1.0, now_ms=0.0)).placed
    assert not guard.busy


def test_guard_released_after_failure():
    guard = ExecutionGuard()
    gateway = AsyncMock()
    gateway.buy.side_effect = ExecutionError("boom")
    engine = _engine(gateway, guard=guard)
    asyncio.run(engine.react(TOKEN_MINT, Side.SELL, 1.0, now_ms=0.0))
    assert not guard.busy


def test_directional_sizing_uses_order_side_fraction():
    gateway = DryRunGateway()
    engine = _engine(gateway, sizing=DirectionalSizing.from_percentages(25, 50), cooldown_ms=None)

    async def run():
        await engine.react(TOKEN_MINT, Side.BUY, 4.0, now_ms=0.0)
        await engine.react(TOKEN_MINT, Side.SELL, 4.0, now_ms=1.0)

    asyncio.run(run())
    assert [(o.side, o.sol_amount) for o in gateway.orders] == [
        (Side.SELL, pytest.approx(2.0)),
        (Side.BUY, pytest.approx(1.0)),
    ]


def test_directional_sizing_rejects_out_of_range():
    with pytest.raises(ValueError):
        DirectionalSizing(buy_fraction=1.5, sell_fraction=0.1)


def test_fixed_sizing_default_is_ten_percent():
    assert FixedSizing().fraction_for(Side.BUY) == pytest.approx(0.10)
