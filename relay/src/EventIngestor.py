"""EventIngestor: Turns oracle contract events into queued requests.

Two log filters are installed on the oracle contract, one for
``GetLatestEthPriceEvent`` and one for ``SetLatestEthPriceEvent``. They are
polled on a fixed interval; every price request becomes an
:class:`OracleRequest` at the back of the queue.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from .OracleRequest import OracleRequest

if TYPE_CHECKING:
    from web3 import Web3
    from web3.contract import Contract

    from .RequestQueue import RequestQueue

logger = logging.getLogger(__name__)

REQUEST_EVENT = "GetLatestEthPriceEvent"
PRICE_SET_EVENT = "SetLatestEthPriceEvent"

DEFAULT_POLL_INTERVAL = 1.0


def is_filter_not_found(error: Exception) -> bool:
    """Check whether an RPC error means the node dropped the filter."""
    return "filter not found" in str(error).lower()


class EventIngestor:
    """Subscribes to oracle events and feeds the request queue.

    :ivar w3: Web3 instance used to uninstall filters.
    :ivar contract: Oracle contract.
    :ivar queue: Queue receiving new requests.
    :ivar poll_interval: Seconds between filter polls.
    :ivar ingested: Requests pushed to the queue.
    :ivar dropped: Events dropped as malformed.
    """

    def __init__(
        self,
        w3: Web3,
        contract: Contract,
        queue: RequestQueue,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")

        self.w3 = w3
        self.contract = contract
        self.queue = queue
        self.poll_interval = poll_interval
        self.ingested = 0
        self.dropped = 0
        self._filters: dict[str, Any] = {}

    def _create_filter(self, event_name: str) -> None:
        event = getattr(self.contract.events, event_name)
        self._filters[event_name] = event.create_filter(from_block="latest")
        logger.info(f"Subscribed to {event_name}")

    def subscribe(self) -> None:
        """Install log filters for both oracle events, starting at the latest block."""
        for event_name in (REQUEST_EVENT, PRICE_SET_EVENT):
            self._create_filter(event_name)

    def handle_request_event(self, event: Mapping[str, Any]) -> OracleRequest | None:
        """Queue the request carried by a ``GetLatestEthPriceEvent``.

        :param event: Decoded log entry.
        :returns: The queued request, or None if the event was dropped.
        """
        try:
            request = OracleRequest.from_event(event)
        except (KeyError, TypeError, ValueError) as e:
            self.dropped += 1
            logger.warning(f"Error on event {REQUEST_EVENT}, dropping it: {e!r}")
            return None

        self.queue.push(request)
        self.ingested += 1
        logger.debug(f"Queued {request} ({len(self.queue)} pending)")
        return request

    def handle_price_set_event(self, event: Mapping[str, Any]) -> None:
        """Observe a ``SetLatestEthPriceEvent``. No action is taken."""
        logger.debug(f"{PRICE_SET_EVENT}: {dict(event.get('args', {}))}")

    def ingest(
        self,
        request_events: Iterable[Mapping[str, Any]],
        price_set_events: Iterable[Mapping[str, Any]] = (),
    ) -> int:
        """Dispatch a batch of log entries to their handlers.

        :returns: Number of requests queued.
        """
        queued = 0
        for event in request_events:
            if self.handle_request_event(event) is not None:
                queued += 1
        for event in price_set_events:
            self.handle_price_set_event(event)
        return queued

    async def _poll_filter(self, event_name: str) -> list:
        """Read new entries from one filter.

        A failed read is logged and yields no entries. A filter the node no
        longer knows is installed again.
        """
        try:
            return await asyncio.to_thread(self._filters[event_name].get_new_entries)
        except Exception as e:
            logger.warning(f"Error polling {event_name}: {e}")
            if is_filter_not_found(e):
                await asyncio.to_thread(self.resubscribe, event_name)
            return []

    async def poll(self) -> int:
        """Fetch new log entries once and ingest them.

        Request entries are queued before the price set filter is read.

        :returns: Number of requests queued.
        """
        queued = self.ingest(await self._poll_filter(REQUEST_EVENT))
        self.ingest((), await self._poll_filter(PRICE_SET_EVENT))
        return queued

    async def run(self) -> None:
        """Poll the filters until cancelled."""
        if not self._filters:
            self.subscribe()

        while True:
            await self.poll()
            await asyncio.sleep(self.poll_interval)

    def _uninstall(self, event_name: str, event_filter: Any) -> None:
        try:
            self.w3.eth.uninstall_filter(event_filter.filter_id)
        except Exception as e:
            logger.warning(f"Failed to uninstall {event_name} filter: {e}")

    def resubscribe(self, event_name: str) -> None:
        """Replace the filter for one event, starting at the latest block.

        Events emitted while the node had no filter are not recovered.
        """
        old_filter = self._filters.get(event_name)
        if old_filter is not None:
            self._uninstall(event_name, old_filter)
        try:
            self._create_filter(event_name)
        except Exception as e:
            logger.warning(f"Failed to resubscribe to {event_name}: {e}")

    def close(self) -> None:
        """Uninstall the log filters."""
        for event_name, event_filter in self._filters.items():
            self._uninstall(event_name, event_filter)
        self._filters = {}
