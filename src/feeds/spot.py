"""Spot price lookup from CoinGecko's simple price endpoint."""

from __future__ import annotations

from typing import Optional

import httpx
import structlog

from src.feeds.resilience import with_retry
from src.utils.parsing import dig, to_positive_float

logger = structlog.get_logger()

COINGECKO_SIMPLE_PRICE = "https://api.coingecko.com/api/v3/simple/price"


class SpotPriceFeed:
    """Polls the underlying's USD price; failures yield None, never raise."""

    def __init__(
        self,
        url: str = COINGECKO_SIMPLE_PRICE,
        asset_id: str = "ethereum",
        quote: str = "usd",
        *,
        timeout: float = 10.0,
        retry_delay: float = 1.0,
    ) -> None:
        self.url = url
        self.asset_id = asset_id
        self.quote = quote
        self.timeout = timeout
        self.retry_delay = retry_delay
        self._client: Optional[httpx.AsyncClient] = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _fetch(self) -> dict:
        client = await self._ensure_client()
        resp = await client.get(
            self.url, params={"ids": self.asset_id, "vs_currencies": self.quote},
        )
        resp.raise_for_status()
        return resp.json()

    async def get_price(self) -> Optional[float]:
        try:
            data = await with_retry(
                self._fetch, operation="spot_price", base_delay=self.retry_delay,
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("spot_price_unavailable", error=str(exc))
            return None
        price = to_positive_float(dig(data, self.asset_id, self.quote))
        if price is None:
            logger.warning("spot_price_malformed", payload=data)
        return price
