"""
Signature listing and transaction fetching for one token.

SignatureSource lists a token's latest signatures (newest first);
TransactionFetcher resolves a signature into validated TransactionMetadata.
Both go through RetryingRpcClient so rate limiting is absorbed here and only
ExhaustedRetries (or a non-retryable RpcError) reaches the session loops.
"""

from __future__ import annotations

from contrarian_agent.agent_logging import get_logger
from contrarian_agent.solana_listener.models import SignatureInfo, TransactionMetadata
from contrarian_agent.solana_listener.rpc import RetryingRpcClient, SolanaRpcClient

logger = get_logger(__name__)


def _short(sig: str) -> str:
    return sig[:8] + "..." if len(sig) > 8 else sig


class SignatureSource:
    """getSignaturesForAddress wrapper with a configurable page size."""

    def __init__(self, rpc: SolanaRpcClient, retry: RetryingRpcClient) -> None:
        self._rpc = rpc
        self._retry = retry

    async def list_signatures(self, token_address: str, limit: int) -> list[SignatureInfo]:
        """Return up to `limit` signatures for token_address, newest first."""
        if not (1 <= limit <= 1000):
            raise ValueError("limit must be between 1 and 1000")
        raw = await self._retry.execute(
            lambda: self._rpc.get_signatures_for_address(token_address, limit=limit),
            "fetching signatures",
        )
        infos: list[SignatureInfo] = []
        for item in raw:
            if not isinstance(item, dict) or "signature" not in item:
                continue
            try:
                infos.append(SignatureInfo.from_rpc_item(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("signature_item_invalid", error=str(e))
        logger.debug("signatures_listed", token_id=token_address, count=len(infos), limit=limit)
        return infos


class TransactionFetcher:
    """getTransaction (jsonParsed) wrapper returning validated metadata or None."""

    def __init__(self, rpc: SolanaRpcClient, retry: RetryingRpcClient) -> None:
        self._rpc = rpc
        self._retry = retry

    async def fetch_transaction(
        self,
        signature: str,
        context: str | None = None,
    ) -> TransactionMetadata | None:
        """
        Fetch and validate one transaction.

        None means "not found / no metadata / invalid payload": skip it, do
        not retry.
        """
        raw = await self._retry.execute(
            lambda: self._rpc.get_parsed_transaction(signature),
            context or f"fetching transaction {_short(signature)}",
        )
        if raw is None or not isinstance(raw.get("meta"), dict):
            logger.debug("tx_metadata_missing", signature=_short(signature))
            return None
        try:
            return TransactionMetadata.from_rpc_result(raw)
        except (ValueError, TypeError) as e:
            logger.debug("tx_metadata_invalid", signature=_short(signature), error=str(e))
            return None
