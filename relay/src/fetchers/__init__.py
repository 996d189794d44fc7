"""
Price fetchers.

Usage:
    from relay.src.fetchers import BinanceFetcher

    fetcher = BinanceFetcher(timeout=5.0)
    price = await fetcher.fetch_price("ETHUSDT")  # "2000.12345678"
"""

from .base import BaseFetcher, FetcherError, FetcherHTTPError
from .binance import BinanceFetcher

__all__ = [
    "BaseFetcher",
    "BinanceFetcher",
    "FetcherError",
    "FetcherHTTPError",
]
