from __future__ import annotations

import asyncio
import math
from datetime import datetime, timezone
from typing import Optional

import httpx

from .errors import InvalidQuoteError, UpstreamError
from .models import Quote
from .util import logger


def _describe(exc: Optional[BaseException]) -> str:
    # httpx timeouts often carry an empty message
    if exc is None:
        return "unknown error"
    return str(exc) or type(exc).__name__


class QuoteFetcher:
    """
    Single-symbol quote lookups against Finnhub's REST /quote endpoint.

    Each lookup makes up to `retries` attempts separated by a fixed
    `retry_delay`; every attempt has its own `timeout`. Transport errors,
    timeouts, non-2xx statuses and payloads without a usable "c" (last
    price) all count as a failed attempt.
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://finnhub.io/api/v1/quote",
        timeout: float = 10.0,
        retries: int = 5,
        retry_delay: float = 2.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if retries < 1:
            raise ValueError("retries must be >= 1")
        self.token = token
        self.base_url = base_url
        self.timeout = timeout
        self.retries = retries
        self.retry_delay = retry_delay
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _attempt(self, symbol: str) -> Quote:
        # Token goes in a header so it never shows up in URLs or error messages
        resp = await self._get_client().get(
            self.base_url,
            params={"symbol": symbol},
            headers={"X-Finnhub-Token": self.token},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        data = resp.json()
        price = data.get("c") if isinstance(data, dict) else None
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            raise InvalidQuoteError(symbol, data)
        if not math.isfinite(price) or price <= 0:
            raise InvalidQuoteError(symbol, data)
        return Quote(symbol=symbol, price=float(price), retrieved_at=datetime.now(tz=timezone.utc))

    async def fetch(self, symbol: str) -> Quote:
        last_exc: Optional[Exception] = None
        for attempt in range(1, self.retries + 1):
            try:
                quote = await self._attempt(symbol)
                logger.info({"msg": "quote_fetched", "symbol": symbol, "price": quote.price, "attempt": attempt})
                return quote
            except (httpx.HTTPError, InvalidQuoteError, ValueError) as e:
                last_exc = e
            if attempt < self.retries:
                logger.warning(
                    {
                        "msg": "quote_retry",
                        "symbol": symbol,
                        "attempt": attempt,
                        "retries": self.retries,
                        "error": _describe(last_exc),
                    }
                )
                await asyncio.sleep(self.retry_delay)

        logger.error({"msg": "quote_failed", "symbol": symbol, "attempts": self.retries, "error": _describe(last_exc)})
        raise UpstreamError(symbol, self.retries, _describe(last_exc)) from last_exc
