from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx

from src.core.errors import UpstreamError
from src.core.settings import AppSettings, get_app_settings

logger = logging.getLogger(__name__)

_request_ids = itertools.count(1)


class SolanaRpcClient:
    """Minimal JSON-RPC client for the Solana methods the platform needs."""

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or get_app_settings()

    async def _call(self, method: str, params: List[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(_request_ids), "method": method, "params": params}
        try:
            async with httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT_SECONDS) as client:
                response = await client.post(self.settings.SOLANA_RPC_URL, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Solana RPC %s failed: %s", method, exc)
            raise UpstreamError("Solana RPC is unavailable") from exc

        body = response.json()
        if body.get("error"):
            logger.warning("Solana RPC %s returned error: %s", method, body["error"])
            raise UpstreamError("Solana RPC returned an error", details=body["error"])
        return body.get("result")

    # PUBLIC_INTERFACE
    async def get_token_balance(self, owner: str, mint: str) -> float:
        """Sum of UI amounts over all token accounts of `owner` for `mint`."""
        result = await self._call(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed", "commitment": "confirmed"}],
        )
        total = 0.0
        for account in (result or {}).get("value", []):
            info = account.get("account", {}).get("data", {}).get("parsed", {}).get("info", {})
            amount = info.get("tokenAmount", {}).get("uiAmount")
            if amount:
                total += float(amount)
        return total

    # PUBLIC_INTERFACE
    async def get_parsed_transaction(self, signature: str) -> Optional[Dict[str, Any]]:
        """Fetch a confirmed transaction in jsonParsed encoding, or None if unknown."""
        return await self._call(
            "getTransaction",
            [
                signature,
                {"encoding": "jsonParsed", "commitment": "confirmed", "maxSupportedTransactionVersion": 0},
            ],
        )


# PUBLIC_INTERFACE
def get_solana_rpc_client() -> SolanaRpcClient:
    """FastAPI dependency returning a Solana RPC client bound to current settings."""
    return SolanaRpcClient()
