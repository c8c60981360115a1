"""
Configuration management for the contrarian agent.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for all runtime configuration.
"""

from contrarian_agent.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
