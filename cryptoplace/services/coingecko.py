"""Helpers for interacting with the public CoinGecko API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from cryptoplace.config.settings import Settings, get_settings
from cryptoplace.schemas.market import (
    CoinDetail,
    CoinSummary,
    PricePoint,
    parse_coin_detail,
    parse_coin_markets,
    parse_market_chart,
)
from cryptoplace.services.errors import MalformedResponse, NetworkFailure

logger = logging.getLogger("cryptoplace.coingecko")


HISTORY_DAYS = 10
HISTORY_INTERVAL = "daily"


class CoinGeckoClient:
    """Thin async client for the three endpoints the dashboard reads."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._settings.HTTP_TIMEOUT_SECONDS)

    def _headers(self) -> Dict[str, str]:
        headers = {"accept": "application/json"}
        if self._settings.COINGECKO_API_KEY:
            headers[self._settings.COINGECKO_KEY_HEADER] = self._settings.COINGECKO_API_KEY
        return headers

    def _url(self, path: str) -> str:
        return f"{self._settings.COINGECKO_BASE_URL}{path}"

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = self._url(path)
        try:
            response = await self._client.get(url, params=params, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.debug("coingecko non-2xx | %s | status=%s", path, status)
            raise NetworkFailure(
                f"CoinGecko returned HTTP {status}",
                status_code=status,
                details={"path": path},
            ) from exc
        except httpx.HTTPError as exc:
            logger.debug("coingecko transport error | %s | err=%s", path, exc)
            raise NetworkFailure("Unable to reach CoinGecko", details={"path": path}) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponse("CoinGecko response is not valid JSON", details={"path": path}) from exc

    async def coin_markets(self, vs_currency: str) -> list[CoinSummary]:
        payload = await self._get_json("/coins/markets", {"vs_currency": vs_currency})
        return parse_coin_markets(payload)

    async def coin_detail(self, coin_id: str) -> CoinDetail:
        # coin ids are opaque path segments; quote so they can't change the route
        payload = await self._get_json(f"/coins/{quote(coin_id, safe='')}")
        return parse_coin_detail(payload)

    async def market_chart(
        self,
        coin_id: str,
        vs_currency: str,
        days: int = HISTORY_DAYS,
        interval: str = HISTORY_INTERVAL,
    ) -> list[PricePoint]:
        params = {"vs_currency": vs_currency, "days": days, "interval": interval}
        payload = await self._get_json(f"/coins/{quote(coin_id, safe='')}/market_chart", params)
        return parse_market_chart(payload)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
