"""
Application settings.

Loads configuration from environment variables (and .env via env.py),
applies defaults for optional values and exposes a typed Settings object
for the listener, ledger, strategy and execution layers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from contrarian_agent.config.env import get_solana_rpc_url, load_agent_env

DEFAULT_WATCH_INTERVAL_SEC = 5.0
DEFAULT_BATCH_INTERVAL_SEC = 1.0
DEFAULT_STREAM_INTERVAL_SEC = 2.0
DEFAULT_RPC_MAX_RETRIES = 5
DEFAULT_RPC_BASE_DELAY_SEC = 2.0
DEFAULT_RPC_REQUEST_DELAY_SEC = 0.5
DEFAULT_RPC_TIMEOUT_SEC = 30.0
DEFAULT_BATCH_SIZE = 5
DEFAULT_MIN_SOL_AMOUNT = 0.001
DEFAULT_INITIAL_SIGNATURE_LIMIT = 1000
DEFAULT_MONITOR_SIGNATURE_LIMIT = 25
DEFAULT_SNAPSHOT_SIGNATURE_LIMIT = 20
DEFAULT_TRADE_COOLDOWN_MS = 1000.0
DEFAULT_OPPOSITE_TRADE_FRACTION = 0.10
DEFAULT_SLIPPAGE_BPS = 100
DEFAULT_DEDUP_CAPACITY = 10_000


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else default


@dataclass
class Settings:
    """Typed runtime settings; every field has an env override (see get_settings)."""

    rpc_url: str
    trades_dir: Path = field(default_factory=lambda: Path("."))
    watch_interval_sec: float = DEFAULT_WATCH_INTERVAL_SEC
    batch_interval_sec: float = DEFAULT_BATCH_INTERVAL_SEC
    stream_interval_sec: float = DEFAULT_STREAM_INTERVAL_SEC
    rpc_max_retries: int = DEFAULT_RPC_MAX_RETRIES
    rpc_base_delay_sec: float = DEFAULT_RPC_BASE_DELAY_SEC
    rpc_request_delay_sec: float = DEFAULT_RPC_REQUEST_DELAY_SEC
    rpc_timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC
    batch_size: int = DEFAULT_BATCH_SIZE
    min_sol_amount: float = DEFAULT_MIN_SOL_AMOUNT
    initial_signature_limit: int = DEFAULT_INITIAL_SIGNATURE_LIMIT
    monitor_signature_limit: int = DEFAULT_MONITOR_SIGNATURE_LIMIT
    snapshot_signature_limit: int = DEFAULT_SNAPSHOT_SIGNATURE_LIMIT
    trade_cooldown_ms: float = DEFAULT_TRADE_COOLDOWN_MS
    opposite_trade_fraction: float = DEFAULT_OPPOSITE_TRADE_FRACTION
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    dedup_capacity: int = DEFAULT_DEDUP_CAPACITY
    execution_api_url: str | None = None

    def __post_init__(self) -> None:
        if not self.rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.rpc_max_retries < 1:
            raise ValueError("rpc_max_retries must be at least 1")
        if not (1 <= self.initial_signature_limit <= 1000):
            raise ValueError("initial_signature_limit must be between 1 and 1000")
        if not (1 <= self.monitor_signature_limit <= 1000):
            raise ValueError("monitor_signature_limit must be between 1 and 1000")
        self.trades_dir = Path(self.trades_dir)


def get_settings() -> Settings:
    """Build Settings from the environment (after loading .env)."""
    load_agent_env()
    return Settings(
        rpc_url=get_solana_rpc_url(),
        trades_dir=Path((os.getenv("TRADES_DIR") or ".").strip() or "."),
        watch_interval_sec=_env_float("WATCH_INTERVAL_SEC", DEFAULT_WATCH_INTERVAL_SEC),
        batch_interval_sec=_env_float("BATCH_INTERVAL_SEC", DEFAULT_BATCH_INTERVAL_SEC),
        stream_interval_sec=_env_float("STREAM_INTERVAL_SEC", DEFAULT_STREAM_INTERVAL_SEC),
        rpc_max_retries=_env_int("RPC_MAX_RETRIES", DEFAULT_RPC_MAX_RETRIES),
        rpc_base_delay_sec=_env_float("RPC_BASE_DELAY_SEC", DEFAULT_RPC_BASE_DELAY_SEC),
        rpc_request_delay_sec=_env_float("RPC_REQUEST_DELAY_SEC", DEFAULT_RPC_REQUEST_DELAY_SEC),
        rpc_timeout_sec=_env_float("RPC_TIMEOUT_SEC", DEFAULT_RPC_TIMEOUT_SEC),
        batch_size=_env_int("BATCH_SIZE", DEFAULT_BATCH_SIZE),
        min_sol_amount=_env_float("MIN_SOL_AMOUNT", DEFAULT_MIN_SOL_AMOUNT),
        initial_signature_limit=_env_int("INITIAL_SIGNATURE_LIMIT", DEFAULT_INITIAL_SIGNATURE_LIMIT),
        monitor_signature_limit=_env_int("MONITOR_SIGNATURE_LIMIT", DEFAULT_MONITOR_SIGNATURE_LIMIT),
        snapshot_signature_limit=_env_int("SNAPSHOT_SIGNATURE_LIMIT", DEFAULT_SNAPSHOT_SIGNATURE_LIMIT),
        trade_cooldown_ms=_env_float("TRADE_COOLDOWN_MS", DEFAULT_TRADE_COOLDOWN_MS),
        opposite_trade_fraction=_env_float("OPPOSITE_TRADE_FRACTION", DEFAULT_OPPOSITE_TRADE_FRACTION),
        slippage_bps=_env_int("SLIPPAGE_BPS", DEFAULT_SLIPPAGE_BPS),
        dedup_capacity=_env_int("DEDUP_CAPACITY", DEFAULT_DEDUP_CAPACITY),
        execution_api_url=(os.getenv("EXECUTION_API_URL") or "").strip() or None,
    )
