"""Trade ledger (CSV persistence) and signature dedup store."""

from contrarian_agent.ledger.dedup import SignatureDedupStore
from contrarian_agent.ledger.store import HEADER, TradeLedger, ledger_path

__all__ = ["HEADER", "SignatureDedupStore", "TradeLedger", "ledger_path"]
