from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from src.core.errors import RateLimitError, UpstreamError
from src.core.settings import AppSettings, get_app_settings

logger = logging.getLogger(__name__)


class BirdeyeClient:
    """Client for the Birdeye public market-data API (Solana chain)."""

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or get_app_settings()

    def _headers(self) -> Dict[str, str]:
        headers = {"accept": "application/json", "x-chain": "solana"}
        if self.settings.BIRDEYE_API_KEY:
            headers["X-API-KEY"] = self.settings.BIRDEYE_API_KEY
        return headers

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.settings.BIRDEYE_BASE_URL,
                timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            ) as client:
                response = await client.get(path, params=params, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning("Birdeye request %s failed: %s", path, exc)
            raise UpstreamError("Market data provider is unavailable") from exc

        if response.status_code == 429:
            raise RateLimitError("Market data provider rate limit reached, try again later")
        if response.status_code >= 400:
            logger.warning("Birdeye %s returned HTTP %d", path, response.status_code)
            raise UpstreamError(
                "Market data provider returned an error",
                details={"status_code": response.status_code},
            )
        body = response.json()
        if not isinstance(body, dict) or not body.get("success", True):
            raise UpstreamError("Market data provider returned an unsuccessful response")
        return body

    # PUBLIC_INTERFACE
    async def get_token_overview(self, mint_address: str) -> Optional[Dict[str, Any]]:
        """Return the token overview payload, or None when Birdeye has no data."""
        body = await self._get("/defi/token_overview", {"address": mint_address})
        data = body.get("data")
        if not data or not data.get("symbol"):
            return None
        return data

    # PUBLIC_INTERFACE
    async def get_token_security(self, mint_address: str) -> Optional[Dict[str, Any]]:
        """Creator address, creation transaction and creation time (epoch seconds), when known."""
        body = await self._get("/defi/token_security", {"address": mint_address})
        return body.get("data") or None

    # PUBLIC_INTERFACE
    async def get_price(self, mint_address: str) -> Optional[float]:
        """Current USD price, or None when unknown."""
        body = await self._get("/defi/price", {"address": mint_address})
        value = (body.get("data") or {}).get("value")
        return float(value) if value is not None else None

    # PUBLIC_INTERFACE
    async def get_price_history(
        self, mint_address: str, *, time_from: int, time_to: int, resolution: str
    ) -> List[Dict[str, Any]]:
        """
        Historical prices between two epoch-second timestamps.

        Returns:
            list of {"unixTime": int, "value": float}, oldest first.
        """
        body = await self._get(
            "/defi/history_price",
            {
                "address": mint_address,
                "address_type": "token",
                "type": resolution,
                "time_from": time_from,
                "time_to": time_to,
            },
        )
        items = (body.get("data") or {}).get("items") or []
        return sorted(
            (i for i in items if i.get("unixTime") is not None and i.get("value") is not None),
            key=lambda i: i["unixTime"],
        )


# PUBLIC_INTERFACE
def get_birdeye_client() -> BirdeyeClient:
    """FastAPI dependency returning a Birdeye client bound to current settings."""
    return BirdeyeClient()
