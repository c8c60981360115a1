"""
Data models for Solana listener output.

SignatureInfo mirrors getSignaturesForAddress items. TransactionMetadata is
the strict schema every classifier works on; it is validated once at the
fetch boundary so downstream code never touches raw RPC dicts. TradeRecord
is the immutable unit persisted to the trade ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

LAMPORTS_PER_SOL = 1_000_000_000


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"
    NONE = "none"

    def opposite(self) -> "Side":
        if self is Side.BUY:
            return Side.SELL
        if self is Side.SELL:
            return Side.BUY
        return Side.NONE


@dataclass(frozen=True)
class SignatureInfo:
    """
    Normalized transaction signature info from getSignaturesForAddress.

    Mirrors Solana RPC response fields; used as the unit of work
    handed from the signature source to the transaction fetcher.
    """

    signature: str
    slot: int | None
    err: Any  # None if success; dict/object from RPC if failed
    block_time: int | None  # Unix timestamp; None if not available
    confirmation_status: str | None  # processed | confirmed | finalized

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "SignatureInfo":
        """Build from a single getSignaturesForAddress result item."""
        slot = item.get("slot")
        return cls(
            signature=item["signature"],
            slot=int(slot) if slot is not None else None,
            err=item.get("err"),
            block_time=item.get("blockTime"),
            confirmation_status=item.get("confirmationStatus"),
        )


class TokenBalanceSnapshot(BaseModel):
    """One pre- or post-transaction SPL token balance entry."""

    model_config = ConfigDict(frozen=True, strict=True)

    account_index: int = Field(..., ge=0)
    mint: str = Field(..., min_length=1)
    owner: str | None = None
    ui_amount: float | None = None

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "TokenBalanceSnapshot":
        ui = item.get("uiTokenAmount") or {}
        return cls(
            account_index=item.get("accountIndex"),
            mint=item.get("mint"),
            owner=item.get("owner"),
            ui_amount=ui.get("uiAmount"),
        )

    @property
    def amount(self) -> float:
        """UI amount with an absent value read as zero."""
        return float(self.ui_amount or 0.0)


class TransactionMetadata(BaseModel):
    """Validated subset of a getTransaction result used for trade classification."""

    model_config = ConfigDict(frozen=True, strict=True)

    signatures: list[str] = Field(..., min_length=1)
    account_keys: list[str]
    pre_balances: list[int]
    post_balances: list[int]
    pre_token_balances: list[TokenBalanceSnapshot] = Field(default_factory=list)
    post_token_balances: list[TokenBalanceSnapshot] = Field(default_factory=list)
    block_time: int | None = None
    slot: int | None = None

    @model_validator(mode="after")
    def _check_balances(self) -> "TransactionMetadata":
        if len(self.pre_balances) != len(self.post_balances):
            raise ValueError("pre_balances and post_balances differ in length")
        return self

    @property
    def signature(self) -> str:
        return self.signatures[0]

    def has_account(self, address: str) -> bool:
        return address in self.account_keys

    def account_index(self, address: str) -> int:
        """Index of address in the account list, or -1."""
        try:
            return self.account_keys.index(address)
        except ValueError:
            return -1

    def native_delta(self, index: int) -> int:
        """post - pre native balance of account `index`, in lamports."""
        return self.post_balances[index] - self.pre_balances[index]

    @classmethod
    def from_rpc_result(cls, raw: dict[str, Any]) -> "TransactionMetadata":
        """
        Build from a getTransaction result (json or jsonParsed encoding).

        Raises ValueError (pydantic ValidationError included) when the payload
        does not match the schema; the caller treats that as missing data.
        """
        tx_obj = raw.get("transaction")
        meta = raw.get("meta")
        if not isinstance(tx_obj, dict) or not isinstance(meta, dict):
            raise ValueError("transaction or meta missing")
        message = tx_obj.get("message")
        if not isinstance(message, dict):
            raise ValueError("transaction.message missing")
        return cls(
            signatures=list(tx_obj.get("signatures") or []),
            account_keys=_get_account_keys(message, meta),
            pre_balances=list(meta.get("preBalances") or []),
            post_balances=list(meta.get("postBalances") or []),
            pre_token_balances=[
                TokenBalanceSnapshot.from_rpc_item(b) for b in meta.get("preTokenBalances") or []
            ],
            post_token_balances=[
                TokenBalanceSnapshot.from_rpc_item(b) for b in meta.get("postTokenBalances") or []
            ],
            block_time=raw.get("blockTime"),
            slot=raw.get("slot"),
        )


def _get_account_keys(message: dict[str, Any], meta: dict[str, Any]) -> list[str]:
    """
    Resolve accountKeys to a list of base58 strings (handles json vs jsonParsed).
    For json-encoded versioned transactions, appends meta.loadedAddresses (writable + readonly).
    """
    keys = message.get("accountKeys") or []
    if not keys:
        return []
    if isinstance(keys[0], str):
        out = list(keys)
        loaded = meta.get("loadedAddresses") or {}
        for role in ("writable", "readonly"):
            out.extend(loaded.get(role) or [])
        return out
    # jsonParsed already lists lookup-table addresses inline
    return [k.get("pubkey", "") for k in keys if isinstance(k, dict)]


def format_timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(raw: str) -> datetime:
    ts = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class TradeRecord:
    """
    One classified trade, as written to the ledger.

    side is buy or sell; a record is never created with side none.
    """

    timestamp: datetime
    side: Side
    sol_amount: float
    token_amount: float
    signature: str

    def __post_init__(self) -> None:
        if self.side is Side.NONE:
            raise ValueError("TradeRecord side must be buy or sell")
        if self.sol_amount < 0 or self.token_amount < 0:
            raise ValueError("TradeRecord amounts must be non-negative")
        if not self.signature:
            raise ValueError("TradeRecord signature must be non-empty")

    @property
    def signed_sol(self) -> float:
        """Buy positive, sell negative."""
        return -self.sol_amount if self.side is Side.SELL else self.sol_amount

    def to_row(self) -> list[str]:
        return [
            format_timestamp(self.timestamp),
            self.side.value.upper(),
            str(self.sol_amount),
            str(self.token_amount),
            self.signature,
        ]

    @classmethod
    def from_row(cls, row: list[str]) -> "TradeRecord":
        if len(row) != 5:
            raise ValueError(f"expected 5 columns, got {len(row)}")
        timestamp, kind, sol_amount, token_amount, signature = row
        return cls(
            timestamp=parse_timestamp(timestamp),
            side=Side(kind.strip().lower()),
            sol_amount=float(sol_amount),
            token_amount=float(token_amount),
            signature=signature.strip(),
        )
