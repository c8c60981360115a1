"""
Structured logging for the contrarian agent.

JSON logs with timestamp, token_id, event_type.
Use get_logger() in all agent modules.
"""

from contrarian_agent.agent_logging.logger import bind_token, configure_structlog, get_logger, session_context

__all__ = ["bind_token", "configure_structlog", "get_logger", "session_context"]
