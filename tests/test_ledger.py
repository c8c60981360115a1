"""
Tests for the CSV trade ledger, the signature dedup store and the bounded
recency set behind both dedup structures.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from contrarian_agent.core import PersistenceError, RecencySet
from contrarian_agent.ledger import HEADER, SignatureDedupStore, TradeLedger, ledger_path
from contrarian_agent.solana_listener import Side, TradeRecord

TOKEN_MINT = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
T0 = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _record(i: int, side: Side = Side.BUY, sol: float = 0.5) -> TradeRecord:
    return TradeRecord(
        timestamp=T0 + timedelta(seconds=i),
        side=side,
        sol_amount=sol,
        token_amount=1000.0 + i,
        signature=f"sig{i:03d}" + "x" * 40,
    )


def test_ledger_path_naming(tmp_path):
    assert ledger_path(tmp_path, TOKEN_MINT) == tmp_path / f"{TOKEN_MINT}_trades.csv"


def test_write_all_writes_header_and_rows(tmp_path):
    ledger = TradeLedger.for_token(tmp_path, TOKEN_MINT)
    ledger.write_all([_record(0, Side.SELL, 1.25), _record(1)])
    lines = ledger.path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == ",".join(HEADER)
    assert lines[1] == "2025-03-01T12:00:00.000Z,SELL,1.25,1000.0," + "sig000" + "x" * 40
    assert lines[2].split(",")[1] == "BUY"
    assert len(lines) == 3


def test_read_all_round_trips_records(tmp_path):
    ledger = TradeLedger.for_token(tmp_path, TOKEN_MINT)
    records = [_record(i, Side.BUY if i % 2 else Side.SELL) for i in range(3)]
    ledger.write_all(records)
    assert ledger.read_all() == records


def test_read_all_missing_file_is_empty(tmp_path):
    ledger = TradeLedger.for_token(tmp_path, TOKEN_MINT)
    assert not ledger.exists()
    assert ledger.read_all() == []


def test_append_keeps_existing_rows_in_order(tmp_path):
    ledger = TradeLedger.for_token(tmp_path, TOKEN_MINT)
    ledger.write_all([_record(0), _record(1)])
    ledger.append([_record(2), _record(3)])
    assert [r.signature[:6] for r in ledger.read_all()] == ["sig000", "sig001", "sig002", "sig003"]


def test_append_nothing_is_noop(tmp_path):
    ledger = TradeLedger.for_token(tmp_path, TOKEN_MINT)
    ledger.append([])
    assert not ledger.exists()


def test_write_all_replaces_previous_contents(tmp_path):
    ledger = TradeLedger.for_token(tmp_path, TOKEN_MINT)
    ledger.write_all([_record(0), _record(1)])
    ledger.write_all([_record(5)])
    assert [r.signature[:6] for r in ledger.read_all()] == ["sig005"]


def test_malformed_row_raises_persistence_error(tmp_path):
    ledger = TradeLedger.for_token(tmp_path, TOKEN_MINT)
    ledger.path.write_text(",".join(HEADER) + "\nnot-a-date,BUY,1,2\n", encoding="utf-8")
    with pytest.raises(PersistenceError):
        ledger.read_all()


def test_blank_rows_are_skipped(tmp_path):
    ledger = TradeLedger.for_token(tmp_path, TOKEN_MINT)
    ledger.write_all([_record(0)])
    with ledger.path.open("a", encoding="utf-8") as f:
        f.write("\n")
    assert len(ledger.read_all()) == 1


def test_no_temp_files_left_behind(tmp_path):
    ledger = TradeLedger.for_token(tmp_path, TOKEN_MINT)
    ledger.write_all([_record(0)])
    ledger.append([_record(1)])
    assert [p.name for p in tmp_path.iterdir()] == [f"{TOKEN_MINT}_trades.csv"]


def test_trade_record_rejects_side_none():
    with pytest.raises(ValueError):
        TradeRecord(timestamp=T0, side=Side.NONE, sol_amount=1.0, token_amount=1.0, signature="abc")


def test_dedup_marks_and_filters():
    dedup = SignatureDedupStore()
    assert dedup.last_processed_time == 0
    assert dedup.is_new("a", 100)
    dedup.mark_processed("a")
    assert dedup.has_processed("a")
    assert not dedup.is_new("a", 200)


def test_dedup_last_processed_time_only_moves_forward():
    dedup = SignatureDedupStore()
    dedup.advance(200)
    dedup.advance(150)
    dedup.advance(None)
    assert dedup.last_processed_time == 200
    assert not dedup.is_new("b", 200)
    assert not dedup.is_new("c", None)
    assert dedup.is_new("d", 201)


def test_recency_set_trims_to_newest_on_overflow():
    seen: RecencySet[int] = RecencySet(4, keep=2)
    for i in range(5):
        seen.add(i)
    assert list(seen) == [3, 4]
    assert 0 not in seen
    assert len(seen) == 2


def test_recency_set_readding_keeps_size():
    seen: RecencySet[str] = RecencySet(3)
    seen.add("x")
    seen.add("x")
    assert len(seen) == 1


def test_dedup_capacity_is_bounded():
    dedup = SignatureDedupStore(capacity=10)
    for i in range(11):
        dedup.mark_processed(f"s{i}")
    assert len(dedup) == 5
    assert dedup.has_processed("s10")
    assert not dedup.has_processed("s0")
