"""
Tests for both trade classifiers: pool-delta (pool perspective) and
user-delta (counterparty perspective, fee-corrected).
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from contrarian_agent.core import SkipReason
from contrarian_agent.solana_listener import (
    Outcome,
    Side,
    TokenBalanceSnapshot,
    TransactionMetadata,
    classify_pool_delta,
    classify_pool_delta_tx,
    classify_user_delta,
)
from contrarian_agent.solana_listener.parser import (
    PUMP_FEE_ACCOUNT,
    PUMP_PROGRAM_ID,
    RAYDIUM_AUTHORITY,
    WSOL_MINT,
    clamp_to_current_year,
)

TOKEN_MINT = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
USER = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"
CURVE = "CurveAccount1111111111111111111111111111111"
OTHER_OWNER = "SomeoneElse11111111111111111111111111111111"
SIG = "3xSigUserDelta1111111111111111111111111111111111111111111111111111111111111111111111"
BLOCK_TIME = 1_735_689_600  # 2025-01-01T00:00:00Z


def _bal(index: int, mint: str, owner: str | None, amount: float | None) -> TokenBalanceSnapshot:
    return TokenBalanceSnapshot(account_index=index, mint=mint, owner=owner, ui_amount=amount)


def _pool(native: float, token: float = 1_000_000.0) -> list[TokenBalanceSnapshot]:
    return [
        _bal(3, WSOL_MINT, RAYDIUM_AUTHORITY, native),
        _bal(4, TOKEN_MINT, RAYDIUM_AUTHORITY, token),
    ]


# --- pool-delta ---


def test_pool_native_increase_is_buy():
    delta = classify_pool_delta(_pool(100.0), _pool(101.0, 999_000.0), TOKEN_MINT)
    assert delta.side is Side.BUY
    assert delta.magnitude == pytest.approx(1.0)


def test_pool_native_decrease_is_sell():
    delta = classify_pool_delta(_pool(100.0), _pool(99.0, 1_001_000.0), TOKEN_MINT)
    assert delta.side is Side.SELL
    assert delta.magnitude == pytest.approx(1.0)


def test_pool_native_unchanged_is_none():
    delta = classify_pool_delta(_pool(100.0), _pool(100.0, 900_000.0), TOKEN_MINT)
    assert delta.side is Side.NONE
    assert delta.magnitude == 0.0


def test_pool_first_matching_entry_wins():
    pre = [_bal(3, WSOL_MINT, RAYDIUM_AUTHORITY, 100.0), _bal(5, WSOL_MINT, RAYDIUM_AUTHORITY, 500.0)]
    post = [_bal(3, WSOL_MINT, RAYDIUM_AUTHORITY, 101.0), _bal(5, WSOL_MINT, RAYDIUM_AUTHORITY, 0.0)]
    delta = classify_pool_delta(pre, post, TOKEN_MINT)
    assert delta.side is Side.BUY
    assert delta.magnitude == pytest.approx(1.0)


def test_pool_entries_of_other_owners_ignored():
    pre = [_bal(1, WSOL_MINT, OTHER_OWNER, 50.0)] + _pool(100.0)
    post = [_bal(1, WSOL_MINT, OTHER_OWNER, 10.0)] + _pool(100.0)
    assert classify_pool_delta(pre, post, TOKEN_MINT).side is Side.NONE


def test_pool_missing_amount_reads_as_zero():
    pre = [_bal(3, WSOL_MINT, RAYDIUM_AUTHORITY, None)]
    post = [_bal(3, WSOL_MINT, RAYDIUM_AUTHORITY, 2.5)]
    delta = classify_pool_delta(pre, post, TOKEN_MINT)
    assert delta.side is Side.BUY
    assert delta.magnitude == pytest.approx(2.5)


def test_pool_delta_over_transaction():
    tx = _tx(pre_tokens=_pool(100.0), post_tokens=_pool(97.5))
    delta = classify_pool_delta_tx(tx, TOKEN_MINT)
    assert delta.side is Side.SELL
    assert delta.magnitude == pytest.approx(2.5)


# --- user-delta ---


def _tx(
    *,
    keys: list[str] | None = None,
    pre: list[int] | None = None,
    post: list[int] | None = None,
    pre_tokens: list[TokenBalanceSnapshot] | None = None,
    post_tokens: list[TokenBalanceSnapshot] | None = None,
    block_time: int | None = BLOCK_TIME,
) -> TransactionMetadata:
    keys = keys if keys is not None else [USER, PUMP_FEE_ACCOUNT, CURVE, PUMP_PROGRAM_ID]
    return TransactionMetadata(
        signatures=[SIG],
        account_keys=keys,
        pre_balances=pre if pre is not None else [0] * len(keys),
        post_balances=post if post is not None else [0] * len(keys),
        pre_token_balances=pre_tokens or [],
        post_token_balances=post_tokens or [],
        block_time=block_time,
    )


def _user_buy_tx(**overrides) -> TransactionMetadata:
    """User spends 1.01 SOL (1 SOL to the curve, 0.01 SOL fee) and receives 1000 tokens."""
    params = dict(
        pre=[10_000_000_000, 0, 50_000_000_000, 1],
        post=[8_990_000_000, 10_000_000, 51_000_000_000, 1],
        pre_tokens=[_bal(0, TOKEN_MINT, USER, None)],
        post_tokens=[_bal(0, TOKEN_MINT, USER, 1000.0)],
    )
    params.update(overrides)
    return _tx(**params)


def test_user_buy_is_labeled_sell_with_fee_removed():
    result = classify_user_delta(_user_buy_tx(), TOKEN_MINT)
    assert result.outcome is Outcome.TRADE
    trade = result.trade
    assert trade.side is Side.SELL
    assert trade.sol_amount == pytest.approx(1.0)
    assert trade.token_amount == pytest.approx(1000.0)
    assert trade.signature == SIG
    assert trade.timestamp == datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_user_sell_is_labeled_buy_without_fee_correction():
    tx = _tx(
        pre=[1_000_000_000, 0, 50_000_000_000, 1],
        post=[1_500_000_000, 5_000_000, 49_500_000_000, 1],
        pre_tokens=[_bal(0, TOKEN_MINT, USER, 1000.0)],
        post_tokens=[_bal(0, TOKEN_MINT, USER, 400.0)],
    )
    result = classify_user_delta(tx, TOKEN_MINT)
    assert result.outcome is Outcome.TRADE
    assert result.trade.side is Side.BUY
    assert result.trade.sol_amount == pytest.approx(0.5)
    assert result.trade.token_amount == pytest.approx(600.0)


def test_user_trade_below_minimum_is_skipped():
    tx = _user_buy_tx(
        pre=[10_000_000_000, 0, 50_000_000_000, 1],
        post=[9_999_500_000, 0, 50_000_500_000, 1],
    )
    result = classify_user_delta(tx, TOKEN_MINT)
    assert result.outcome is Outcome.BELOW_THRESHOLD
    assert result.skip_reason is SkipReason.BELOW_THRESHOLD
    assert result.trade is None


def test_user_delta_program_absent_not_applicable():
    tx = _user_buy_tx(keys=[USER, PUMP_FEE_ACCOUNT, CURVE, OTHER_OWNER])
    assert classify_user_delta(tx, TOKEN_MINT).skip_reason is SkipReason.NOT_APPLICABLE


def test_user_delta_missing_block_time_is_missing_data():
    assert classify_user_delta(_user_buy_tx(block_time=None), TOKEN_MINT).skip_reason is SkipReason.MISSING_DATA


def test_user_delta_without_target_token_entry_is_missing_data():
    tx = _user_buy_tx(post_tokens=[_bal(0, WSOL_MINT, USER, 1000.0)])
    assert classify_user_delta(tx, TOKEN_MINT).skip_reason is SkipReason.MISSING_DATA


def test_user_delta_no_native_movement_is_missing_data():
    tx = _user_buy_tx(pre=[1, 1, 1, 1], post=[1, 1, 1, 1])
    assert classify_user_delta(tx, TOKEN_MINT).skip_reason is SkipReason.MISSING_DATA


def test_user_delta_zero_token_change_not_applicable():
    tx = _user_buy_tx(
        pre_tokens=[_bal(0, TOKEN_MINT, USER, 5.0)],
        post_tokens=[_bal(0, TOKEN_MINT, USER, 5.0)],
    )
    assert classify_user_delta(tx, TOKEN_MINT).skip_reason is SkipReason.NOT_APPLICABLE


def test_user_delta_future_year_clamped_to_current():
    future = int(datetime(2031, 6, 15, 12, 0, tzinfo=timezone.utc).timestamp())
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    result = classify_user_delta(_user_buy_tx(block_time=future), TOKEN_MINT, now=lambda: now)
    assert result.trade.timestamp == datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


def test_clamp_leap_day_into_non_leap_year():
    ts = datetime(2028, 2, 29, 8, 30, tzinfo=timezone.utc)
    clamped = clamp_to_current_year(ts, now=datetime(2026, 1, 1, tzinfo=timezone.utc))
    assert clamped == datetime(2026, 2, 28, 8, 30, tzinfo=timezone.utc)


def test_clamp_leaves_past_timestamps_alone():
    ts = datetime(2024, 5, 1, tzinfo=timezone.utc)
    assert clamp_to_current_year(ts, now=datetime(2026, 1, 1, tzinfo=timezone.utc)) == ts
