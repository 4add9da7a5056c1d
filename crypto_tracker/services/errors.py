from __future__ import annotations


class MarketDataError(RuntimeError):
    """Base class for failures while retrieving market data."""


class NetworkError(MarketDataError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(MarketDataError):
    pass
