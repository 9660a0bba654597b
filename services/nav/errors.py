"""
Error taxonomy of the NAV service.

ConfigError and UpstreamError fail the request that raised them.
PersistenceError is logged when it follows a successful NAV computation and
returned to the caller on explicit history reads and resets.
"""

from __future__ import annotations


class NavError(Exception):
    """Base class for all service errors."""


class ConfigError(NavError):
    pass


class InvalidQuoteError(NavError):
    """Upstream answered, but without a usable last price."""

    def __init__(self, symbol: str, payload: object) -> None:
        super().__init__(f"Invalid price data for {symbol}")
        self.symbol = symbol
        self.payload = payload


class UpstreamError(NavError):
    """
    A quote lookup failed on every attempt. The message is the final
    attempt's error message, unchanged; the exception itself is chained
    as __cause__.
    """

    def __init__(self, symbol: str, attempts: int, details: str) -> None:
        super().__init__(details)
        self.symbol = symbol
        self.attempts = attempts
        self.details = details


class PersistenceError(NavError):
    def __init__(self, path: str, details: str) -> None:
        super().__init__(f"{path}: {details}")
        self.path = path
        self.details = details
