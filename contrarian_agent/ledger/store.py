"""
Per-token trade ledger: CSV file with a fixed header.

TIMESTAMP,TYPE,SOL_AMOUNT,TOKEN_AMOUNT,TX_HASH

write_all replaces the file (first population); append reads the existing
rows, concatenates and rewrites. Every write goes through a temp file in the
same directory followed by os.replace, so readers never see a partial file.
"""

from __future__ import annotations

import csv
import io
import os
import tempfile
from pathlib import Path
from typing import Iterable

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.core.exceptions import PersistenceError
from contrarian_agent.solana_listener.models import TradeRecord

logger = get_logger(__name__)

HEADER = ["TIMESTAMP", "TYPE", "SOL_AMOUNT", "TOKEN_AMOUNT", "TX_HASH"]


def ledger_path(trades_dir: str | Path, token_address: str) -> Path:
    return Path(trades_dir) / f"{token_address}_trades.csv"


class TradeLedger:
    """Ordered, append-only trade record for one token."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @classmethod
    def for_token(cls, trades_dir: str | Path, token_address: str) -> "TradeLedger":
        return cls(ledger_path(trades_dir, token_address))

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def read_all(self) -> list[TradeRecord]:
        """Records in file order (oldest to newest as written); [] if the file is missing."""
        if not self.exists():
            return []
        try:
            with self._path.open("r", encoding="utf-8", newline="") as f:
                rows = list(csv.reader(f))
        except OSError as e:
            raise PersistenceError(f"Could not read ledger {self._path}: {e}") from e
        records: list[TradeRecord] = []
        for line_no, row in enumerate(rows[1:], start=2):
            if not row or not any(cell.strip() for cell in row):
                continue
            try:
                records.append(TradeRecord.from_row(row))
            except (ValueError, TypeError) as e:
                raise PersistenceError(f"Malformed ledger row {line_no} in {self._path}: {e}") from e
        return records

    def write_all(self, records: Iterable[TradeRecord]) -> None:
        """Replace the ledger with exactly `records`."""
        records = list(records)
        self._atomic_write(records)
        logger.info("ledger_written", path=str(self._path), records=len(records), mode="rewrite")

    def append(self, records: Iterable[TradeRecord]) -> None:
        """Add `records` after the existing ones."""
        new = list(records)
        if not new:
            return
        existing = self.read_all()
        self._atomic_write(existing + new)
        logger.info(
            "ledger_written",
            path=str(self._path),
            records=len(new),
            total=len(existing) + len(new),
            mode="append",
        )

    def _atomic_write(self, records: list[TradeRecord]) -> None:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(HEADER)
        for record in records:
            writer.writerow(record.to_row())
        directory = self._path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(buf.getvalue())
            os.replace(tmp_name, self._path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Could not write ledger {self._path}: {e}") from e
