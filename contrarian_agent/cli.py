"""
Command-line entry points.

    contrarian-watch <token>                      keep <token>_trades.csv current
    contrarian-mm <token> [--buy-pct N --sell-pct N]
                                                  batch contrarian orders off the ledger
    contrarian-stream <token>                     per-trade contrarian orders (pool-delta)
    contrarian-snapshot <token>                   bonding-curve check + latest trades

Each returns a process exit code: 0 on a clean stop, 1 on a fatal startup
error (invalid address, missing bonding curve, bad configuration).
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Any, Callable, Coroutine, Sequence

from solders.pubkey import Pubkey

from contrarian_agent.agent_logging import bind_token, get_logger, session_context
from contrarian_agent.agent_worker import (
    MarketMaker,
    OrderWatcher,
    TradeStreamWatcher,
    build_gateway,
    close_gateway,
    open_rpc,
    run_until_stopped,
    take_snapshot,
)
from contrarian_agent.config import Settings, get_settings
from contrarian_agent.config.env import mask_rpc_url
from contrarian_agent.core import PersistenceError, StartupFatalError
from contrarian_agent.execution import ExecutionGuard
from contrarian_agent.ledger import SignatureDedupStore, TradeLedger
from contrarian_agent.strategy import (
    BatchAggregator,
    ContrarianDecisionEngine,
    DirectionalSizing,
    FixedSizing,
    TradeStateRegistry,
)

logger = get_logger(__name__)

Prompt = Callable[[str], str]


def parse_token_address(raw: str) -> Pubkey | None:
    """The mint as a Pubkey, or None if raw is not a base58 32-byte address."""
    try:
        return Pubkey.from_string(raw.strip())
    except ValueError:
        return None


def _token_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument("token_address", help="Token mint address (base58)")
    return parser


def _percentage(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {raw!r}") from None
    if not (0.0 <= value <= 100.0):
        raise argparse.ArgumentTypeError(f"must be between 0 and 100, got {value}")
    return value


def prompt_percentage(label: str, prompt: Prompt = input) -> float:
    """Ask until a number between 0 and 100 is entered."""
    while True:
        raw = prompt(f"Enter {label} percentage (0-100): ").strip()
        try:
            return _percentage(raw)
        except argparse.ArgumentTypeError as e:
            print(f"Invalid {label} percentage: {e}")


def _startup(args: argparse.Namespace, command: str) -> Settings | None:
    """Validate the token address and load settings; None means exit 1."""
    token = args.token_address.strip()
    if parse_token_address(token) is None:
        logger.error("invalid_token_address", command=command, token_address=token)
        return None
    try:
        settings = get_settings()
    except ValueError as e:
        logger.error("invalid_configuration", command=command, error=str(e))
        return None
    bind_token(token).info(
        "command_started",
        command=command,
        rpc_url=mask_rpc_url(settings.rpc_url),
        trades_dir=str(settings.trades_dir),
    )
    return settings


def _run(command: str, token: str, main: Callable[[], Coroutine[Any, Any, int]]) -> int:
    try:
        with session_context(token, command):
            return asyncio.run(main())
    except StartupFatalError as e:
        logger.error("startup_fatal", command=command, error=str(e))
        return 1


async def _watch(token: str, settings: Settings) -> int:
    ledger = TradeLedger.for_token(settings.trades_dir, token)
    async with open_rpc(settings) as kit:
        watcher = OrderWatcher(
            token,
            kit.source,
            kit.fetcher,
            ledger,
            SignatureDedupStore(settings.dedup_capacity),
            batch_size=settings.batch_size,
            initial_limit=settings.initial_signature_limit,
            monitor_limit=settings.monitor_signature_limit,
            min_sol_amount=settings.min_sol_amount,
            request_delay_sec=settings.rpc_request_delay_sec,
        )
        await run_until_stopped(lambda stop: watcher.run(stop, settings.watch_interval_sec))
    return 0


async def _market_maker(token: str, settings: Settings, sizing: DirectionalSizing) -> int:
    guard = ExecutionGuard()
    gateway = build_gateway(settings)
    engine = ContrarianDecisionEngine(
        gateway,
        TradeStateRegistry(),
        sizing,
        cooldown_ms=None,
        slippage_bps=settings.slippage_bps,
        guard=guard,
    )
    aggregator = BatchAggregator(token, engine, window_size=settings.batch_size)
    maker = MarketMaker(token, TradeLedger.for_token(settings.trades_dir, token), aggregator)
    try:
        await run_until_stopped(lambda stop: maker.run(stop, settings.batch_interval_sec), guard=guard)
    finally:
        await close_gateway(gateway)
    return 0


async def _stream(token: str, settings: Settings) -> int:
    guard = ExecutionGuard()
    gateway = build_gateway(settings)
    engine = ContrarianDecisionEngine(
        gateway,
        TradeStateRegistry(),
        FixedSizing(settings.opposite_trade_fraction),
        cooldown_ms=settings.trade_cooldown_ms,
        slippage_bps=settings.slippage_bps,
        guard=guard,
    )
    try:
        async with open_rpc(settings) as kit:
            watcher = TradeStreamWatcher(
                token,
                kit.source,
                kit.fetcher,
                engine,
                SignatureDedupStore(settings.dedup_capacity),
                limit=settings.monitor_signature_limit,
                request_delay_sec=settings.rpc_request_delay_sec,
            )
            await run_until_stopped(lambda stop: watcher.run(stop, settings.stream_interval_sec), guard=guard)
    finally:
        await close_gateway(gateway)
    return 0


async def _snapshot(token: str, settings: Settings) -> int:
    ledger = TradeLedger.for_token(settings.trades_dir, token)
    async with open_rpc(settings) as kit:
        try:
            await take_snapshot(
                token,
                kit.rpc,
                kit.retry,
                kit.source,
                kit.fetcher,
                ledger,
                limit=settings.snapshot_signature_limit,
                count=settings.batch_size,
                min_sol_amount=settings.min_sol_amount,
                request_delay_sec=settings.rpc_request_delay_sec,
            )
        except PersistenceError as e:
            logger.error("snapshot_write_failed", token_id=token, error=str(e))
            return 1
    return 0


def watch_main(argv: Sequence[str] | None = None) -> int:
    parser = _token_parser("contrarian-watch", "Watch a token and keep its trade ledger current.")
    args = parser.parse_args(argv)
    settings = _startup(args, "watch")
    if settings is None:
        return 1
    token = args.token_address.strip()
    return _run("watch", token, lambda: _watch(token, settings))


def market_maker_main(argv: Sequence[str] | None = None, prompt: Prompt = input) -> int:
    parser = _token_parser("contrarian-mm", "Place contrarian orders against each new batch in the trade ledger.")
    parser.add_argument("--buy-pct", type=_percentage, default=None, help="Buy order size as %% of net volume")
    parser.add_argument("--sell-pct", type=_percentage, default=None, help="Sell order size as %% of net volume")
    args = parser.parse_args(argv)
    settings = _startup(args, "market_maker")
    if settings is None:
        return 1
    try:
        buy_pct = args.buy_pct if args.buy_pct is not None else prompt_percentage("buy", prompt)
        sell_pct = args.sell_pct if args.sell_pct is not None else prompt_percentage("sell", prompt)
    except EOFError:
        logger.error("percentages_missing", command="market_maker")
        return 1
    sizing = DirectionalSizing.from_percentages(buy_pct, sell_pct)
    logger.info("market_maker_sizing", buy_fraction=sizing.buy_fraction, sell_fraction=sizing.sell_fraction)
    token = args.token_address.strip()
    return _run("market_maker", token, lambda: _market_maker(token, settings, sizing))


def stream_main(argv: Sequence[str] | None = None) -> int:
    parser = _token_parser("contrarian-stream", "Answer every detected pool trade with an opposite order.")
    args = parser.parse_args(argv)
    settings = _startup(args, "stream")
    if settings is None:
        return 1
    token = args.token_address.strip()
    return _run("stream", token, lambda: _stream(token, settings))


def snapshot_main(argv: Sequence[str] | None = None) -> int:
    parser = _token_parser("contrarian-snapshot", "Check the bonding curve and record the latest trades.")
    args = parser.parse_args(argv)
    settings = _startup(args, "snapshot")
    if settings is None:
        return 1
    token = args.token_address.strip()
    return _run("snapshot", token, lambda: _snapshot(token, settings))
