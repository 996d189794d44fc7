"""Base fetcher interface and shared HTTP client management.

A price fetcher performs exactly one remote read per call and either
returns the price as the decimal string published by the source or raises
:class:`FetcherError`. Retrying is left to the caller.

A shared httpx.AsyncClient is used across all fetchers to avoid connection
overhead.

.. code-block:: python

    class MyFetcher(BaseFetcher):
        name = "myfetcher"

        async def fetch_price(self, symbol: str) -> str:
            response = await self._get(f"https://api.example.com/{symbol}")
            return self._parse_decimal(response.json()["price"])
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import httpx

logger = logging.getLogger(__name__)

# Plain non-negative decimal, no sign or exponent (e.g. "2000.12345678").
DECIMAL_PATTERN = re.compile(r"^\d+(\.\d+)?$")


class FetcherError(Exception):
    """Base exception for fetcher errors."""

    pass


class FetcherHTTPError(FetcherError):
    """Raised when HTTP request fails.

    :ivar status_code: HTTP status code from the failed request.
    """

    def __init__(self, status_code: int, message: str):
        """Initialize the HTTP error.

        :param status_code: HTTP status code.
        :param message: Error message from response.
        """
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}")


class BaseFetcher(ABC):
    """Abstract base class for price fetchers.

    Subclasses must implement:
        - name: Class variable identifying the source (e.g., "binance")
        - fetch_price(): Async method returning the price for a symbol

    :cvar name: Unique identifier for this fetcher.
    :cvar DEFAULT_TIMEOUT: Default HTTP request timeout in seconds.
    :ivar timeout: Request timeout in seconds.
    """

    # Class-level shared HTTP client
    _shared_client: ClassVar[httpx.AsyncClient | None] = None

    # Fetcher identification
    name: ClassVar[str] = ""

    # Default timeout for HTTP requests (seconds)
    DEFAULT_TIMEOUT = 10.0

    def __init__(self, timeout: float | None = None):
        """Initialize the fetcher.

        :param timeout: Request timeout in seconds (default: 10).
        """
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    @classmethod
    def get_shared_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client.

        The client is shared across all fetcher instances to reuse connections.

        :returns: Shared httpx.AsyncClient instance.
        """
        if (
            BaseFetcher._shared_client is None
            or BaseFetcher._shared_client.is_closed
        ):
            BaseFetcher._shared_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                follow_redirects=True,
            )
        return BaseFetcher._shared_client

    @classmethod
    async def close_shared_client(cls) -> None:
        """Close the shared HTTP client."""
        client = BaseFetcher._shared_client
        if client is not None and not client.is_closed:
            await client.aclose()
        BaseFetcher._shared_client = None

    @abstractmethod
    async def fetch_price(self, symbol: str) -> str:
        """Fetch the current price for a trading symbol.

        :param symbol: Source-specific symbol (e.g., "ETHUSDT").
        :returns: Price as a plain decimal string.
        :raises FetcherError: On transport error, non-2xx response or
            malformed body.
        """
        pass

    @staticmethod
    def _parse_decimal(value: Any) -> str:
        """Validate a price value taken from a response body.

        :param value: Raw ``price`` field.
        :returns: The value as a decimal string.
        :raises FetcherError: If the value is not a plain decimal string.
        """
        if not isinstance(value, str) or not DECIMAL_PATTERN.match(value):
            raise FetcherError(f"Malformed price value: {value!r}")
        return value

    async def _get(
        self,
        url: str,
        *,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        """Make an HTTP GET request using the shared client.

        :param url: Request URL.
        :param params: Optional query parameters.
        :param headers: Optional request headers.
        :returns: httpx.Response object.
        :raises FetcherHTTPError: On non-2xx response.
        :raises FetcherError: On network/timeout errors.
        """
        client = self.get_shared_client()
        try:
            response = await client.get(
                url,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
            if not response.is_success:
                logger.debug(
                    "HTTP GET %s failed with status %s: %s",
                    url,
                    response.status_code,
                    response.text[:200],
                )
                raise FetcherHTTPError(response.status_code, response.text[:200])
            return response
        except httpx.TimeoutException as e:
            raise FetcherError(f"Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise FetcherError(f"Request failed: {e}") from e
