"""
Structured logging for the agent sessions.

Every record is one JSON object (LOG_FORMAT=console for a readable local
view) carrying event_type, level, timestamp, logger and any fields bound for
the running command, token_id in particular:

    logger = get_logger(__name__)
    with session_context(token_address, "watch"):
        logger.info("trade_detected", side="sell", sol_amount=1.5)

Only structlog and the stdlib are imported here, so any module may import it.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _rename_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def configure_structlog(log_format: str | None = None, level: int | None = None) -> None:
    """(Re)configure structlog; called once on import with the env defaults."""
    fmt = (log_format or LOG_FORMAT).strip().lower()
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if fmt == "json":
        processors += [_rename_event, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level or LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name).bind(logger=name)


def bind_token(token_address: str) -> structlog.BoundLogger:
    """Logger with token_id bound, for one-off records outside a session_context."""
    return get_logger("contrarian_agent").bind(token_id=token_address)


@contextmanager
def session_context(token_address: str, command: str) -> Iterator[None]:
    """Attach token_id and command to every record logged inside the block."""
    with structlog.contextvars.bound_contextvars(token_id=token_address, command=command):
        yield
