"""RetryEngine: Per-request fetch/retry/fallback state machine.

Each request starts in ``ATTEMPTING`` and ends in exactly one terminal
state::

    ATTEMPTING(n) --fetch ok-------------------------> SUBMITTED
    ATTEMPTING(n) --fetch failed, n < max_retries-1--> ATTEMPTING(n+1)
    ATTEMPTING(n) --fetch failed, n == max_retries-1-> FALLBACK_SUBMITTED

Retries are immediate. ``FALLBACK_SUBMITTED`` writes ``SENTINEL_PRICE``
so the caller contract learns that no price is available. The outcome of
the writeback does not change the terminal state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .fetchers import FetcherError
from .PriceWriter import SENTINEL_PRICE

if TYPE_CHECKING:
    from .fetchers import BaseFetcher
    from .OracleRequest import OracleRequest
    from .PriceWriter import PriceWriter

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5


class RequestState(Enum):
    """Lifecycle state of a request inside the retry engine."""

    ATTEMPTING = "attempting"
    SUBMITTED = "submitted"
    FALLBACK_SUBMITTED = "fallback_submitted"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestState.ATTEMPTING


@dataclass
class RequestOutcome:
    """Result of processing one request.

    :ivar request: The processed request.
    :ivar state: Terminal state reached.
    :ivar price: Value handed to the writer (real price or sentinel).
    :ivar failed_attempts: Number of failed fetch attempts.
    :ivar written: Whether the writeback was confirmed on-chain.
    """

    request: OracleRequest
    state: RequestState
    price: str
    failed_attempts: int
    written: bool


class RetryEngine:
    """Fetches a price for each request and writes the result back.

    :ivar fetcher: Price source.
    :ivar writer: Writeback adapter.
    :ivar symbol: Symbol passed to the fetcher.
    :ivar max_retries: Fetch attempts before falling back to the sentinel.
    :ivar fetch_timeout: Upper bound for a single fetch in seconds.
    """

    def __init__(
        self,
        fetcher: BaseFetcher,
        writer: PriceWriter,
        symbol: str = "ETHUSDT",
        max_retries: int = DEFAULT_MAX_RETRIES,
        fetch_timeout: float = 10.0,
    ) -> None:
        """Initialize the retry engine.

        :raises ValueError: If max_retries < 1 or fetch_timeout <= 0.
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be positive")

        self.fetcher = fetcher
        self.writer = writer
        self.symbol = symbol
        self.max_retries = max_retries
        self.fetch_timeout = fetch_timeout

    async def process(self, request: OracleRequest) -> RequestOutcome:
        """Drive a request to a terminal state.

        Fetch failures are absorbed here and never raised.

        :param request: Request to answer.
        :returns: Outcome describing the terminal state.
        """
        state = RequestState.ATTEMPTING
        attempt = 0
        price = SENTINEL_PRICE

        while not state.is_terminal:
            try:
                price = await self._fetch()
                state = RequestState.SUBMITTED
            except (FetcherError, asyncio.TimeoutError) as e:
                logger.warning(
                    f"{request}: fetch failed ({str(e) or type(e).__name__}) "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                if attempt == self.max_retries - 1:
                    state = RequestState.FALLBACK_SUBMITTED
                else:
                    attempt += 1

        if state is RequestState.FALLBACK_SUBMITTED:
            failed_attempts = attempt + 1
            price = SENTINEL_PRICE
            logger.warning(
                f"{request}: no price after {failed_attempts} attempts, "
                f"submitting sentinel {SENTINEL_PRICE}"
            )
        else:
            failed_attempts = attempt

        written = await self.writer.set_latest_price(
            request.caller_address, price, request.id
        )
        return RequestOutcome(
            request=request,
            state=state,
            price=price,
            failed_attempts=failed_attempts,
            written=written,
        )

    async def _fetch(self) -> str:
        return await asyncio.wait_for(
            self.fetcher.fetch_price(self.symbol), timeout=self.fetch_timeout
        )
