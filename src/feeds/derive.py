"""Derive (formerly Lyra) options exchange REST client.

Every endpoint is a JSON POST. Public reads (instruments, tickers) are
retried with backoff; private reads carry the wallet/timestamp/signature
headers. Order submission is never retried: a resend could double-fill.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import httpx
import structlog

from src.exceptions import FeedError, OrderPlacementError
from src.feeds.resilience import with_retry

logger = structlog.get_logger()


class DeriveClient:
    def __init__(
        self,
        api_base: str,
        *,
        currency: str = "ETH",
        subaccount_id: int = 0,
        auth_headers: Optional[Callable[[], dict[str, str]]] = None,
        timeout: float = 20.0,
        retry_delay: float = 1.0,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.currency = currency
        self.subaccount_id = subaccount_id
        self._auth_headers = auth_headers
        self.timeout = timeout
        self.retry_delay = retry_delay
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            timeout = httpx.Timeout(self.timeout, connect=10.0)
            self._client = httpx.AsyncClient(timeout=timeout)
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def api_post(self, path: str, body: dict, headers: Optional[dict] = None) -> Any:
        client = await self._ensure_client()
        resp = await client.post(f"{self.api_base}{path}", json=body, headers=headers or {})
        resp.raise_for_status()
        return resp.json()

    async def _read(self, path: str, body: dict, *, private: bool = False) -> Any:
        async def call() -> Any:
            headers = self._auth_headers() if private and self._auth_headers else None
            return await self.api_post(path, body, headers)

        try:
            data = await with_retry(call, operation=path, base_delay=self.retry_delay)
        except (httpx.HTTPError, ValueError) as exc:
            raise FeedError(f"{path}: {exc}") from exc
        if not isinstance(data, dict):
            raise FeedError(f"{path}: unexpected payload")
        if data.get("error"):
            raise FeedError(f"{path}: {data['error']}")
        return data.get("result")

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def get_instruments(self) -> list[dict]:
        """Live (non-expired) option instruments for the currency."""
        result = await self._read(
            "/public/get_instruments",
            {"currency": self.currency, "expired": False, "instrument_type": "option"},
        )
        return result if isinstance(result, list) else []

    async def get_tickers(self, expiry_date: str) -> dict[str, dict]:
        """Tickers for one expiry (``YYYYMMDD``), keyed by instrument name."""
        result = await self._read(
            "/public/get_tickers",
            {"instrument_type": "option", "currency": self.currency, "expiry_date": expiry_date},
        )
        tickers = (result or {}).get("tickers") if isinstance(result, dict) else None
        return tickers if isinstance(tickers, dict) else {}

    async def get_positions(self) -> list[dict]:
        result = await self._read(
            "/private/get_positions", {"subaccount_id": self.subaccount_id}, private=True,
        )
        if isinstance(result, dict):
            result = result.get("positions")
        return result if isinstance(result, list) else []

    async def place_order(self, payload: dict[str, Any], headers: dict[str, str]) -> dict[str, Any]:
        """Submit a signed order once. Raises OrderPlacementError on rejection."""
        try:
            data = await self.api_post("/private/order", payload, headers)
        except (httpx.HTTPError, ValueError) as exc:
            raise OrderPlacementError(f"{payload.get('instrument_name')}: {exc}") from exc
        if not isinstance(data, dict):
            raise OrderPlacementError(f"{payload.get('instrument_name')}: unexpected payload")
        if data.get("error"):
            raise OrderPlacementError(f"{payload.get('instrument_name')}: {data['error']}")
        return data
