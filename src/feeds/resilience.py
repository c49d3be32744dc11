"""Retry helper for read-only REST calls."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import httpx
import structlog

logger = structlog.get_logger()
T = TypeVar("T")

RETRYABLE = (httpx.TimeoutException, httpx.HTTPStatusError, httpx.TransportError)


async def with_retry(
    coro_factory: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    operation: str = "",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Retry an async REST call with exponential backoff.

    Only safe for idempotent reads; order submission must never go through
    here.
    """
    for attempt in range(max_attempts):
        try:
            return await coro_factory()
        except RETRYABLE as e:
            if attempt == max_attempts - 1:
                logger.error("request_failed", op=operation, error=str(e), attempts=attempt + 1)
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning("request_retry", op=operation, attempt=attempt + 1, delay=delay, error=str(e))
            await sleep(delay)
    raise RuntimeError("max_attempts must be at least 1")
