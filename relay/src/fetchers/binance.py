"""Binance spot ticker fetcher.

Endpoint: https://api.binance.com/api/v3/ticker/price
Rate Limit: High (no key required for public endpoints)
Precision: prices are published with 8 fractional digits
"""

import logging

from .base import BaseFetcher, FetcherError

logger = logging.getLogger(__name__)


class BinanceFetcher(BaseFetcher):
    """Fetcher for the Binance public ticker.

    Returns the ``price`` field verbatim so that the writer can apply the
    fixed-point conversion to the exact digits Binance published.
    """

    name = "binance"
    BASE_URL = "https://api.binance.com/api/v3"

    async def fetch_price(self, symbol: str) -> str:
        """Fetch the latest price from Binance.

        :param symbol: Binance symbol (e.g., "ETHUSDT").
        :returns: Price as a decimal string (e.g., "2000.12345678").
        :raises FetcherError: On any transport, status or parse failure.
        """
        url = f"{self.BASE_URL}/ticker/price"
        response = await self._get(url, params={"symbol": symbol})

        try:
            data = response.json()
        except ValueError as e:
            raise FetcherError(f"[binance] Invalid JSON for {symbol}: {e}") from e

        if not isinstance(data, dict) or "price" not in data:
            raise FetcherError(f"[binance] No price in response for {symbol}: {data}")

        price = self._parse_decimal(data["price"])
        logger.debug(f"[binance] {symbol} = {price}")
        return price
