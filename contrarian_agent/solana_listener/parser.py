"""
Trade classification: validated TransactionMetadata to a directional trade.

Two strategies with different labeling conventions; callers pick one by name:

- pool-delta (classify_pool_delta): compares a known liquidity-pool
  authority's wrapped-SOL balance before and after the transaction. Labels
  from the pool's perspective: pool SOL up => "buy".
- user-delta (classify_user_delta): infers the trader as the account with the
  largest native balance change. Labels from the counterparty's perspective:
  the user receiving tokens => "sell", the user giving tokens up => "buy".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.core.diagnostics import SkipReason
from contrarian_agent.solana_listener.models import (
    LAMPORTS_PER_SOL,
    Side,
    TokenBalanceSnapshot,
    TradeRecord,
    TransactionMetadata,
)

logger = get_logger(__name__)

WSOL_MINT = "So11111111111111111111111111111111111111112"
# Raydium AMM v4 LP authority
RAYDIUM_AUTHORITY = "5Q544fKrFoe6tsEbD7S8FxcJPMeVpkEgPWjCzGw3ZNzo"
PUMP_PROGRAM_ID = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
PUMP_FEE_ACCOUNT = "CebN5WGQ4jvEPvsVU4EoHEpgzq1VV7AbicfhtW4xC9iM"
MIN_SOL_AMOUNT = 0.001

POOL_DELTA = "pool-delta"
USER_DELTA = "user-delta"


# --- pool-delta ---


@dataclass(frozen=True)
class PoolDelta:
    """Pool-perspective trade: side none only when the pool's SOL did not move."""

    side: Side
    magnitude: float


def _scan_pool(
    balances: Iterable[TokenBalanceSnapshot],
    pool_authority: str,
    native_mint: str,
    target_mint: str,
) -> tuple[float, float]:
    """(native, token) held by pool_authority; first match wins, stops once both are found."""
    native: float | None = None
    token: float | None = None
    for entry in balances:
        if native is not None and token is not None:
            break
        if entry.owner != pool_authority:
            continue
        if entry.mint == native_mint and native is None:
            native = entry.amount
        elif entry.mint == target_mint and token is None:
            token = entry.amount
    return native or 0.0, token or 0.0


def classify_pool_delta(
    pre_token_balances: Iterable[TokenBalanceSnapshot],
    post_token_balances: Iterable[TokenBalanceSnapshot],
    target_mint: str,
    *,
    pool_authority: str = RAYDIUM_AUTHORITY,
    native_mint: str = WSOL_MINT,
) -> PoolDelta:
    """
    Direction and SOL size of a swap from the pool's native-currency balance.

    Pool SOL increased => buy of (post - pre); decreased => sell of
    (pre - post); unchanged => none, 0. Token deltas are read but never
    used for direction.
    """
    pre_native, pre_token = _scan_pool(pre_token_balances, pool_authority, native_mint, target_mint)
    post_native, post_token = _scan_pool(post_token_balances, pool_authority, native_mint, target_mint)
    logger.debug(
        "pool_balances",
        pre_pool_native=pre_native,
        post_pool_native=post_native,
        pre_pool_token=pre_token,
        post_pool_token=post_token,
    )
    if post_native > pre_native:
        return PoolDelta(Side.BUY, post_native - pre_native)
    if post_native < pre_native:
        return PoolDelta(Side.SELL, pre_native - post_native)
    return PoolDelta(Side.NONE, 0.0)


def classify_pool_delta_tx(
    tx: TransactionMetadata,
    target_mint: str,
    *,
    pool_authority: str = RAYDIUM_AUTHORITY,
    native_mint: str = WSOL_MINT,
) -> PoolDelta:
    """classify_pool_delta over a fetched transaction's token balances."""
    return classify_pool_delta(
        tx.pre_token_balances,
        tx.post_token_balances,
        target_mint,
        pool_authority=pool_authority,
        native_mint=native_mint,
    )


# --- user-delta ---


class Outcome(str, Enum):
    TRADE = "trade"
    NOT_APPLICABLE = SkipReason.NOT_APPLICABLE.value
    BELOW_THRESHOLD = SkipReason.BELOW_THRESHOLD.value
    MISSING_DATA = SkipReason.MISSING_DATA.value


@dataclass(frozen=True)
class Classification:
    outcome: Outcome
    trade: TradeRecord | None = None
    detail: str = ""

    @property
    def skip_reason(self) -> SkipReason | None:
        if self.outcome is Outcome.TRADE:
            return None
        return SkipReason(self.outcome.value)


def _skip(outcome: Outcome, detail: str) -> Classification:
    return Classification(outcome=outcome, detail=detail)


def clamp_to_current_year(ts: datetime, now: datetime | None = None) -> datetime:
    """Pull a timestamp whose year is after the current one back into the current year."""
    current_year = (now or datetime.now(timezone.utc)).year
    if ts.year <= current_year:
        return ts
    try:
        return ts.replace(year=current_year)
    except ValueError:
        # Feb 29 into a non-leap year
        return ts.replace(year=current_year, day=28)


def _largest_native_change(tx: TransactionMetadata) -> int:
    """Index with the largest absolute lamport change, -1 if nothing moved."""
    best_idx = -1
    best_change = 0
    for i in range(len(tx.pre_balances)):
        change = abs(tx.native_delta(i))
        if change > best_change:
            best_change = change
            best_idx = i
    return best_idx


def classify_user_delta(
    tx: TransactionMetadata,
    target_mint: str,
    *,
    program_id: str = PUMP_PROGRAM_ID,
    fee_account: str | None = PUMP_FEE_ACCOUNT,
    min_sol_amount: float = MIN_SOL_AMOUNT,
    now: Callable[[], datetime] | None = None,
) -> Classification:
    """
    Classify a bonding-curve trade from the trader's balance changes.

    The trader is the account with the largest absolute native change. On buys
    the fee collector's gain is subtracted from the SOL amount. The resulting
    record is labeled from the counterparty's side (user bought => "sell").
    """
    if tx.block_time is None:
        return _skip(Outcome.MISSING_DATA, "no block time")
    if not tx.has_account(program_id):
        return _skip(Outcome.NOT_APPLICABLE, "program not in account list")

    user_index = _largest_native_change(tx)
    if user_index == -1:
        return _skip(Outcome.MISSING_DATA, "no native balance change")
    # positive => user spent SOL
    user_native_change = tx.pre_balances[user_index] - tx.post_balances[user_index]

    pre_by_index = {}
    for entry in tx.pre_token_balances:
        pre_by_index.setdefault(entry.account_index, entry)
    post_entry = next(
        (
            b
            for b in tx.post_token_balances
            if b.mint == target_mint and b.account_index in pre_by_index
        ),
        None,
    )
    if post_entry is None:
        return _skip(Outcome.MISSING_DATA, "no token balance changes found")
    pre_entry = pre_by_index[post_entry.account_index]

    pre_amount = pre_entry.amount
    post_amount = post_entry.amount
    token_change = abs(post_amount - pre_amount)
    if token_change == 0:
        return _skip(Outcome.NOT_APPLICABLE, "zero token change")
    is_buy = post_amount > pre_amount

    actual_lamports = abs(user_native_change)
    if is_buy and fee_account is not None:
        fee_index = tx.account_index(fee_account)
        if fee_index != -1:
            actual_lamports -= tx.native_delta(fee_index)
    actual_sol = actual_lamports / LAMPORTS_PER_SOL

    if actual_sol < min_sol_amount:
        return _skip(
            Outcome.BELOW_THRESHOLD,
            f"trade amount {actual_sol} SOL below minimum {min_sol_amount} SOL",
        )

    timestamp = clamp_to_current_year(
        datetime.fromtimestamp(tx.block_time, tz=timezone.utc),
        now() if now else None,
    )
    trade = TradeRecord(
        timestamp=timestamp,
        side=Side.SELL if is_buy else Side.BUY,
        sol_amount=actual_sol,
        token_amount=token_change,
        signature=tx.signature,
    )
    return Classification(outcome=Outcome.TRADE, trade=trade)
