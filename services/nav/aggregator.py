from __future__ import annotations

import asyncio
from typing import Dict, List, Protocol, Sequence, Tuple, Union

from .models import NavResult, Quote
from .util import logger


class Fetcher(Protocol):
    async def fetch(self, symbol: str) -> Quote: ...


class NavAggregator:
    """
    NAV = round(scale * sum(price_i * weight_i), precision).

    All-or-nothing: if any symbol's fetch fails after its retries, the whole
    computation fails. Retries belong to the fetcher, not to this layer.
    """

    def __init__(self, fetcher: Fetcher, scale: float = 10.0, precision: int = 2, parallel: bool = True) -> None:
        self.fetcher = fetcher
        self.scale = scale
        self.precision = precision
        self.parallel = parallel

    async def _fetch_all(self, symbols: List[str]) -> List[Quote]:
        if not self.parallel:
            return [await self.fetcher.fetch(s) for s in symbols]

        # Wait for every fetch; report the first failure in table order
        results: List[Union[Quote, BaseException]] = await asyncio.gather(
            *(self.fetcher.fetch(s) for s in symbols), return_exceptions=True
        )
        for res in results:
            if isinstance(res, BaseException):
                raise res
        return list(results)

    async def compute(self, weights: Sequence[Tuple[str, float]]) -> NavResult:
        if not weights:
            raise ValueError("weight table is empty")
        symbols = [symbol for symbol, _ in weights]
        quotes = await self._fetch_all(symbols)

        nav = 0.0
        contributions: Dict[str, float] = {}
        for (symbol, weight), quote in zip(weights, quotes):
            contribution = quote.price * weight
            contributions[symbol] = contribution
            nav += contribution

        final_nav = round(nav * self.scale, self.precision)
        logger.info({"msg": "nav_computed", "nav": final_nav, "symbols": symbols})
        return NavResult(nav=final_nav, contributions=contributions)
