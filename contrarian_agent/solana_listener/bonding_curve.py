"""
Bonding-curve account lookup for pump.fun tokens.

The curve is treated as an opaque account: we derive its address, confirm it
exists (a missing account is fatal for the session) and decode the reserve
counters for logging. No pricing is done here.
"""

from __future__ import annotations

import base64
import struct
from dataclasses import dataclass
from typing import Any

from solders.pubkey import Pubkey

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.core.exceptions import StartupFatalError
from contrarian_agent.solana_listener.parser import PUMP_PROGRAM_ID
from contrarian_agent.solana_listener.rpc import RetryingRpcClient, SolanaRpcClient

logger = get_logger(__name__)

BONDING_CURVE_SEED = b"bonding-curve"
# 8-byte anchor discriminator, five u64 counters, one bool
_CURVE_LAYOUT = struct.Struct("<8sQQQQQ?")


@dataclass(frozen=True)
class BondingCurveReserves:
    virtual_token_reserves: int
    virtual_sol_reserves: int
    real_token_reserves: int
    real_sol_reserves: int
    token_total_supply: int
    complete: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "virtual_token_reserves": self.virtual_token_reserves,
            "virtual_sol_reserves": self.virtual_sol_reserves,
            "real_token_reserves": self.real_token_reserves,
            "real_sol_reserves": self.real_sol_reserves,
            "token_total_supply": self.token_total_supply,
            "complete": self.complete,
        }


def bonding_curve_address(mint: str, program_id: str = PUMP_PROGRAM_ID) -> str:
    """Program-derived address of the bonding curve for mint."""
    pda, _bump = Pubkey.find_program_address(
        [BONDING_CURVE_SEED, bytes(Pubkey.from_string(mint))],
        Pubkey.from_string(program_id),
    )
    return str(pda)


def decode_reserves(data_b64: str) -> BondingCurveReserves:
    """Decode bonding-curve account data (base64). Raises ValueError on short data."""
    raw = base64.b64decode(data_b64)
    if len(raw) < _CURVE_LAYOUT.size:
        raise ValueError(f"bonding curve data too short: {len(raw)} bytes")
    _disc, vtoken, vsol, rtoken, rsol, supply, complete = _CURVE_LAYOUT.unpack_from(raw)
    return BondingCurveReserves(vtoken, vsol, rtoken, rsol, supply, complete)


async def fetch_bonding_curve(
    rpc: SolanaRpcClient,
    retry: RetryingRpcClient,
    mint: str,
) -> BondingCurveReserves | None:
    """
    Confirm the bonding curve for mint exists and return its reserves.

    Raises StartupFatalError if the account is missing. Returns None when
    the account exists but its data cannot be decoded.
    """
    address = bonding_curve_address(mint)
    account = await retry.execute(
        lambda: rpc.get_account_info(address),
        "fetching bonding curve account",
    )
    if account is None:
        raise StartupFatalError(f"Bonding curve account not found for token {mint}")
    data = account.get("data")
    encoded = data[0] if isinstance(data, list) and data else None
    if not isinstance(encoded, str):
        logger.warning("bonding_curve_data_unreadable", token_id=mint, curve=address)
        return None
    try:
        reserves = decode_reserves(encoded)
    except ValueError as e:
        logger.warning("bonding_curve_data_unreadable", token_id=mint, curve=address, error=str(e))
        return None
    logger.info("bonding_curve_reserves", token_id=mint, curve=address, **reserves.to_dict())
    return reserves
