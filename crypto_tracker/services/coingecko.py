"""Helpers for interacting with the public CoinGecko API."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from crypto_tracker.config.settings import COINGECKO_MARKETS_URL, Settings
from crypto_tracker.schemas.market import CoinRecord
from crypto_tracker.services.errors import NetworkError, ParseError

logger = logging.getLogger("crypto_tracker.coingecko")

COINGECKO_URL = COINGECKO_MARKETS_URL


class MarketDataSource(ABC):
    @abstractmethod
    async def fetch_markets(self) -> List[CoinRecord]:
        """Return coin records ordered by market cap, largest first."""


async def fetch_raw_market_data(
    vs_currency: str = "usd",
    order: str = "market_cap_desc",
    per_page: int = 50,
    page: int = 1,
    sparkline: bool = False,
    *,
    client: httpx.AsyncClient,
    url: str = COINGECKO_URL,
    headers: Optional[dict[str, str]] = None,
) -> list[dict[str, Any]]:
    """Return the raw CoinGecko market payload as a list of dicts."""

    params = {
        "vs_currency": vs_currency,
        "order": order,
        "per_page": per_page,
        "page": page,
        "sparkline": str(sparkline).lower(),
    }

    try:
        response = await client.get(url, params=params, headers=headers)
        logger.debug("GET %s -> %s", url, response.status_code)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        raise NetworkError(f"CoinGecko returned HTTP {status}", status_code=status) from exc
    except httpx.HTTPError as exc:
        raise NetworkError(f"Unable to reach CoinGecko: {exc}") from exc

    try:
        data = response.json()
    except ValueError as exc:
        raise ParseError("CoinGecko response is not valid JSON") from exc

    if not isinstance(data, list):
        raise ParseError(f"Expected a list of markets, got {type(data).__name__}")
    return data


def parse_markets(raw: list[dict[str, Any]]) -> List[CoinRecord]:
    try:
        return [CoinRecord.model_validate(item) for item in raw]
    except ValidationError as exc:
        raise ParseError(f"Malformed market record: {exc.error_count()} error(s)") from exc


class CoinGeckoSource(MarketDataSource):
    """Fetches the top markets page with the tracker's fixed query."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        url: str = COINGECKO_URL,
        vs_currency: str = "usd",
        per_page: int = 50,
        api_key: Optional[str] = None,
    ) -> None:
        self._client = client
        self._url = url
        self._vs_currency = vs_currency
        self._per_page = per_page
        self._api_key = api_key

    @classmethod
    def from_settings(cls, settings: Settings) -> "CoinGeckoSource":
        if settings.HTTP_TIMEOUT_SECONDS is not None:
            client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
        else:
            client = httpx.AsyncClient()
        return cls(
            client,
            url=settings.COINGECKO_URL,
            vs_currency=settings.VS_CURRENCY,
            per_page=settings.PER_PAGE,
            api_key=settings.COINGECKO_API_KEY,
        )

    @property
    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            return {}
        return {"x-cg-demo-api-key": self._api_key}

    async def fetch_markets(self) -> List[CoinRecord]:
        raw = await fetch_raw_market_data(
            vs_currency=self._vs_currency,
            per_page=self._per_page,
            client=self._client,
            url=self._url,
            headers=self._headers,
        )
        return parse_markets(raw)

    async def aclose(self) -> None:
        await self._client.aclose()
