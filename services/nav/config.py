from __future__ import annotations

import math
from typing import List, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings

WeightTable = List[Tuple[str, float]]


def parse_weights(raw: str) -> WeightTable:
    """
    Parse "AAPL:0.065,MSFT:0.06" into an ordered list of (symbol, weight).
    Order of the input is the aggregation order.
    """
    table: WeightTable = []
    seen = set()
    for token in (raw or "").split(","):
        item = token.strip()
        if not item:
            continue
        symbol, sep, weight_text = item.partition(":")
        symbol = symbol.strip().upper()
        if not sep or not symbol:
            raise ValueError(f"malformed weight entry: {item!r} (expected SYMBOL:weight)")
        try:
            weight = float(weight_text)
        except ValueError:
            raise ValueError(f"weight for {symbol} is not a number: {weight_text!r}")
        if not math.isfinite(weight) or weight <= 0:
            raise ValueError(f"weight for {symbol} must be a positive number, got {weight_text!r}")
        if symbol in seen:
            raise ValueError(f"duplicate symbol in weight table: {symbol}")
        seen.add(symbol)
        table.append((symbol, weight))
    if not table:
        raise ValueError("weight table is empty")
    return table


def list_origins(raw: str) -> List[str]:
    return [s.strip() for s in (raw or "").split(",") if s.strip()]


class Settings(BaseSettings):
    finnhub_api_key: str = Field(default="")
    finnhub_base_url: str = Field(default="https://finnhub.io/api/v1/quote")

    nav_weights: str = Field(default="AAPL:0.065,MSFT:0.06,AMZN:0.033,GOOGL:0.025,NVDA:0.04")
    nav_scale: float = Field(default=10.0)
    nav_precision: int = Field(default=2, ge=0)
    price_symbol: str = Field(default="SPY")

    fetch_timeout: float = Field(default=10.0, gt=0)
    fetch_retries: int = Field(default=5, ge=1)
    fetch_retry_delay: float = Field(default=2.0, ge=0)
    parallel_fetch: bool = Field(default=True)

    history_file: str = Field(default="history.json")
    history_max_entries: int = Field(default=100, ge=1)

    allowed_origins: str = Field(default="https://spy-nav-frontend.vercel.app,http://localhost:3000")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5051)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = ""
        case_sensitive = False
        extra = "ignore"

    @property
    def weights(self) -> WeightTable:
        return parse_weights(self.nav_weights)

    @property
    def origins(self) -> List[str]:
        return list_origins(self.allowed_origins)
