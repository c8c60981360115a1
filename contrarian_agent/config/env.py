"""
Environment for the agent commands: the .env file next to the package and
the Solana RPC endpoint it selects.

SOLANA_RPC_URL wins outright. Otherwise HELIUS_API_KEY picks the Helius
endpoint for SOLANA_NETWORK (mainnet unless set to devnet), and without a
key the public cluster endpoint is used.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from dotenv import load_dotenv

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"

MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
DEVNET_RPC_URL = "https://api.devnet.solana.com"

_PUBLIC_ENDPOINTS = {"mainnet": MAINNET_RPC_URL, "devnet": DEVNET_RPC_URL}
_HELIUS_ENDPOINT = "https://{network}.helius-rpc.com/?api-key={key}"
_API_KEY_PARAM = re.compile(r"(api-key=)[^&]*")


def load_agent_env() -> None:
    # override=False: real environment variables beat the file
    load_dotenv(ENV_FILE, override=False)


def _network() -> str:
    raw = os.getenv("SOLANA_NETWORK") or os.getenv("SOLANA_CLUSTER") or ""
    return "devnet" if raw.strip().lower() == "devnet" else "mainnet"


def get_solana_rpc_url() -> str:
    load_agent_env()
    explicit = os.getenv("SOLANA_RPC_URL", "").strip()
    if explicit:
        return explicit
    network = _network()
    key = os.getenv("HELIUS_API_KEY", "").strip()
    if key:
        return _HELIUS_ENDPOINT.format(network=network, key=key)
    return _PUBLIC_ENDPOINTS[network]


def mask_rpc_url(url: str) -> str:
    """Hide api-key query values so the URL can be logged."""
    return _API_KEY_PARAM.sub(r"\1***", url)
