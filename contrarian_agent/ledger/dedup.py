"""
Signature dedup for one watch session.

A signature is marked only after its transaction was handled (a trade was
recorded or it was definitively skipped); signatures whose fetch failed stay
unmarked so the next cycle retries them.
"""

from __future__ import annotations

from contrarian_agent.core.recency import RecencySet

DEFAULT_CAPACITY = 10_000


class SignatureDedupStore:
    """Bounded, recency-biased set of processed signatures plus last processed block time."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._seen: RecencySet[str] = RecencySet(capacity)
        self._last_processed_time = 0

    def has_processed(self, signature: str) -> bool:
        return signature in self._seen

    def mark_processed(self, signature: str) -> None:
        self._seen.add(signature)

    @property
    def last_processed_time(self) -> int:
        """Unix seconds of the newest confirmed block handled; 0 before any."""
        return self._last_processed_time

    def advance(self, block_time: int | float | None) -> None:
        """Move last_processed_time forward (never backward)."""
        if block_time is None:
            return
        self._last_processed_time = max(self._last_processed_time, int(block_time))

    def is_new(self, signature: str, block_time: int | None) -> bool:
        """Unseen and newer than last_processed_time."""
        return not self.has_processed(signature) and (block_time or 0) > self._last_processed_time

    def __len__(self) -> int:
        return len(self._seen)
