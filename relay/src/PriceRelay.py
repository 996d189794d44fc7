"""PriceRelay: Wires the oracle request relay together.

Architecture:
    - EventIngestor polls the oracle contract for price requests and
      appends them to a RequestQueue
    - BatchScheduler drains up to chunk_size requests every sleep interval
    - RetryEngine fetches the price for each request, retrying immediately
      up to max_retries times before falling back to a zero sentinel
    - PriceWriter submits the result to the oracle contract

The queue lives in memory only; pending requests are discarded on shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .BatchScheduler import BatchScheduler
from .ContractUtility import ContractUtility
from .EventIngestor import EventIngestor
from .fetchers import BaseFetcher, BinanceFetcher
from .PriceWriter import PriceWriter
from .RequestQueue import RequestQueue
from .RetryEngine import RetryEngine

if TYPE_CHECKING:
    from web3 import Web3
    from web3.contract import Contract

logger = logging.getLogger(__name__)


class PriceRelay:
    """Main orchestrator for the oracle request relay.

    :ivar network_name: Target network name or RPC URL.
    :ivar queue: Pending requests shared by ingestor and scheduler.
    :ivar ingestor: Event ingestor.
    :ivar retry_engine: Per-request retry state machine.
    :ivar scheduler: Batch scheduler.
    """

    def __init__(
        self,
        network_name: str,
        key_file: str,
        artifact_path: str,
        oracle_address: str | None = None,
        sleep_interval: float = 2.0,
        chunk_size: int = 3,
        max_retries: int = 5,
        fetch_timeout: float = 10.0,
        event_poll_interval: float = 1.0,
        symbol: str = "ETHUSDT",
    ) -> None:
        """Initialize the relay.

        Connects to the network and resolves the oracle contract. Any
        failure here is fatal.

        :param network_name: Network to connect to (localnet, sapphire,
            sapphire-testnet) or an RPC URL.
        :param key_file: Path to the relay's private key file.
        :param artifact_path: Path to the oracle contract build artifact.
        :param oracle_address: Optional oracle address overriding the artifact.
        :param sleep_interval: Seconds between scheduler ticks (default: 2.0).
        :param chunk_size: Requests drained per tick (default: 3).
        :param max_retries: Fetch attempts per request (default: 5).
        :param fetch_timeout: Timeout for a single price fetch (default: 10.0).
        :param event_poll_interval: Seconds between event polls (default: 1.0).
        :param symbol: Price feed symbol (default: "ETHUSDT").
        """
        self.network_name = network_name

        contract_utility = ContractUtility(network_name, key_file)
        self.w3: Web3 = contract_utility.w3
        self.owner_address = contract_utility.owner_address
        self.oracle_contract: Contract = contract_utility.get_oracle_contract(
            artifact_path, oracle_address
        )

        self.queue = RequestQueue()
        self.fetcher: BaseFetcher = BinanceFetcher(timeout=fetch_timeout)
        self.writer = PriceWriter(self.w3, self.oracle_contract, self.owner_address)
        self.retry_engine = RetryEngine(
            fetcher=self.fetcher,
            writer=self.writer,
            symbol=symbol,
            max_retries=max_retries,
            fetch_timeout=fetch_timeout,
        )
        self.ingestor = EventIngestor(
            self.w3,
            self.oracle_contract,
            self.queue,
            poll_interval=event_poll_interval,
        )
        self.scheduler = BatchScheduler(
            self.queue,
            self.retry_engine,
            interval=sleep_interval,
            chunk_size=chunk_size,
        )

        logger.info(
            f"PriceRelay initialized: oracle={self.oracle_contract.address}, "
            f"owner={self.owner_address}, symbol={symbol}"
        )

    async def run(self) -> None:
        """Run the relay until cancelled.

        Subscribes to the oracle events, then runs the ingestor and the
        scheduler side by side.
        """
        self.ingestor.subscribe()
        try:
            await asyncio.gather(self.ingestor.run(), self.scheduler.run())
        finally:
            await self.close()

    async def close(self) -> None:
        """Disconnect from the event stream and release the HTTP client."""
        logger.info("Shutting down the relay")
        self.ingestor.close()
        await BaseFetcher.close_shared_client()

        if len(self.queue):
            logger.warning(f"Discarding {len(self.queue)} pending requests")
        logger.info(
            f"Relay stats: ingested={self.ingestor.ingested}, "
            f"dropped={self.ingestor.dropped}, submitted={self.writer.submitted}, "
            f"failed={self.writer.failed}"
        )
