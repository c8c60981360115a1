"""
Per-session diagnostics: counts per skip and error category.

Every skipped signature or caught error goes through Diagnostics.record so
that nothing is dropped without a categorized log entry.
"""

from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Any

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.core.exceptions import (
    ExecutionError,
    ExhaustedRetries,
    PersistenceError,
    RateLimitedError,
    StartupFatalError,
)

logger = get_logger(__name__)


class SkipReason(str, Enum):
    """Why a transaction did not produce a trade record."""

    NOT_APPLICABLE = "not_applicable"
    BELOW_THRESHOLD = "below_threshold"
    MISSING_DATA = "missing_data"


class ErrorCategory(str, Enum):
    RATE_LIMITED = "rate_limited"
    PERSISTENCE_FAILURE = "persistence_failure"
    STARTUP_FATAL = "startup_fatal"
    EXECUTION_FAILED = "execution_failed"
    UNEXPECTED = "unexpected"


def categorize(exc: BaseException) -> ErrorCategory:
    if isinstance(exc, (RateLimitedError, ExhaustedRetries)):
        return ErrorCategory.RATE_LIMITED
    if isinstance(exc, PersistenceError):
        return ErrorCategory.PERSISTENCE_FAILURE
    if isinstance(exc, StartupFatalError):
        return ErrorCategory.STARTUP_FATAL
    if isinstance(exc, ExecutionError):
        return ErrorCategory.EXECUTION_FAILED
    return ErrorCategory.UNEXPECTED


class Diagnostics:
    """Counter of processed transactions, trades, skips and errors for one session."""

    def __init__(self, session: str) -> None:
        self.session = session
        self._counts: Counter[str] = Counter()

    def processed(self) -> None:
        self._counts["processed"] += 1

    def trade(self) -> None:
        self._counts["trades"] += 1

    def record(self, category: SkipReason | ErrorCategory, **fields: Any) -> None:
        """Count one occurrence of category and log it with the given fields."""
        self._counts[category.value] += 1
        if isinstance(category, SkipReason):
            logger.info("tx_skipped", session=self.session, category=category.value, **fields)
        else:
            logger.warning("session_error", session=self.session, category=category.value, **fields)

    def record_error(self, exc: BaseException, **fields: Any) -> ErrorCategory:
        """Count exc under its category (see categorize) and log it."""
        category = categorize(exc)
        self.record(category, error=str(exc), error_type=type(exc).__name__, **fields)
        return category

    def count(self, key: SkipReason | ErrorCategory | str) -> int:
        name = key.value if isinstance(key, Enum) else key
        return self._counts[name]

    def reset(self) -> None:
        self._counts.clear()

    def summary(self) -> dict[str, int]:
        out = {"processed": self._counts["processed"], "trades": self._counts["trades"]}
        for reason in SkipReason:
            out[reason.value] = self._counts[reason.value]
        for category in ErrorCategory:
            out[category.value] = self._counts[category.value]
        return out

    def log_summary(self, event: str = "processing_summary") -> None:
        logger.info(event, session=self.session, **self.summary())
