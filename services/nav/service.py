from __future__ import annotations

import asyncio
from typing import List, Optional

from .aggregator import NavAggregator
from .config import Settings, WeightTable
from .errors import ConfigError, PersistenceError
from .fetcher import QuoteFetcher
from .history import HistoryStore
from .models import NavSample, Quote
from .util import logger, utc_iso


class QuoteService:
    """Composition root: wires fetcher, aggregator and history store from one Settings."""

    def __init__(
        self,
        settings: Settings,
        fetcher: Optional[QuoteFetcher] = None,
        aggregator: Optional[NavAggregator] = None,
        store: Optional[HistoryStore] = None,
    ) -> None:
        self.settings = settings
        self.weights: WeightTable = settings.weights
        self.fetcher = fetcher or QuoteFetcher(
            token=settings.finnhub_api_key,
            base_url=settings.finnhub_base_url,
            timeout=settings.fetch_timeout,
            retries=settings.fetch_retries,
            retry_delay=settings.fetch_retry_delay,
        )
        self.aggregator = aggregator or NavAggregator(
            self.fetcher,
            scale=settings.nav_scale,
            precision=settings.nav_precision,
            parallel=settings.parallel_fetch,
        )
        self.store = store or HistoryStore(settings.history_file, max_entries=settings.history_max_entries)

    def _require_credential(self) -> None:
        if not self.settings.finnhub_api_key:
            logger.error({"msg": "missing_finnhub_api_key"})
            raise ConfigError("FINNHUB_API_KEY is not configured")

    async def get_nav(self) -> NavSample:
        self._require_credential()
        result = await self.aggregator.compute(self.weights)
        sample = NavSample(time=utc_iso(), nav=result.nav)
        try:
            # File I/O and the store lock stay off the event loop
            await asyncio.to_thread(self.store.append, sample)
        except PersistenceError as e:
            # The computed value still goes back to the caller
            logger.error({"msg": "history_append_failed", "path": e.path, "error": e.details})
        else:
            logger.info({"msg": "nav_saved", "nav": sample.nav, "time": sample.time})
        return sample

    async def get_price(self, symbol: Optional[str] = None) -> Quote:
        self._require_credential()
        return await self.fetcher.fetch((symbol or self.settings.price_symbol).upper())

    def get_history(self) -> List[NavSample]:
        return self.store.list()

    def reset_history(self) -> None:
        self.store.reset()

    async def aclose(self) -> None:
        await self.fetcher.aclose()
