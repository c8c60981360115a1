"""
Pytest fixtures for contrarian agent tests. Keeps env-driven settings and
.env loading away from the developer's real configuration.
"""

from __future__ import annotations

import pytest

_AGENT_ENV_VARS = (
    "SOLANA_RPC_URL",
    "HELIUS_API_KEY",
    "SOLANA_NETWORK",
    "SOLANA_CLUSTER",
    "TRADES_DIR",
    "BATCH_SIZE",
    "EXECUTION_API_URL",
    "INITIAL_SIGNATURE_LIMIT",
    "MONITOR_SIGNATURE_LIMIT",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Clear agent env vars and skip .env loading for every test."""
    for name in _AGENT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("contrarian_agent.config.env.load_agent_env", lambda: None)
    monkeypatch.setattr("contrarian_agent.config.settings.load_agent_env", lambda: None)


@pytest.fixture
def trades_dir(tmp_path, monkeypatch):
    """Temporary TRADES_DIR for ledger files."""
    monkeypatch.setenv("TRADES_DIR", str(tmp_path))
    return tmp_path
