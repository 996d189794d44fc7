"""Unit tests for EventIngestor."""

import asyncio
from unittest.mock import MagicMock

import pytest

from relay.src.EventIngestor import PRICE_SET_EVENT, REQUEST_EVENT, EventIngestor
from relay.src.OracleRequest import OracleRequest
from relay.src.RequestQueue import RequestQueue
from relay.tests.helpers import make_event


def make_ingestor(poll_interval: float = 1.0) -> tuple[EventIngestor, RequestQueue]:
    queue = RequestQueue()
    ingestor = EventIngestor(MagicMock(), MagicMock(), queue, poll_interval=poll_interval)
    return ingestor, queue


class TestEventIngestorHandlers:
    """Test event handling without a live subscription."""

    def test_invalid_poll_interval(self) -> None:
        with pytest.raises(ValueError, match="poll_interval must be positive"):
            EventIngestor(MagicMock(), MagicMock(), RequestQueue(), poll_interval=0)

    def test_request_event_queued(self) -> None:
        """A price request event should become a queued request."""
        ingestor, queue = make_ingestor()
        request = ingestor.handle_request_event(make_event(5, "0xabc"))

        assert request == OracleRequest(5, "0xabc")
        assert queue.snapshot() == [request]
        assert ingestor.ingested == 1

    def test_n_events_n_requests(self) -> None:
        """N well-formed events should give a queue of length N."""
        ingestor, queue = make_ingestor()
        queued = ingestor.ingest([make_event(i) for i in range(25)])

        assert queued == 25
        assert len(queue) == 25
        assert [r.id for r in queue.snapshot()] == list(range(25))

    def test_duplicate_ids_not_deduplicated(self) -> None:
        ingestor, queue = make_ingestor()
        ingestor.ingest([make_event(1), make_event(1)])
        assert len(queue) == 2

    def test_malformed_event_dropped(self, caplog) -> None:
        """Malformed events are logged and dropped, later events still queue."""
        ingestor, queue = make_ingestor()
        events = [
            make_event(1),
            {"args": {"callerAddress": "0xabc"}},
            {"no_args": True},
            make_event("garbage"),
            make_event(2),
        ]

        queued = ingestor.ingest(events)

        assert queued == 2
        assert [r.id for r in queue.snapshot()] == [1, 2]
        assert ingestor.dropped == 3
        assert "Error on event" in caplog.text

    def test_price_set_event_ignored(self) -> None:
        """Price set events should not touch the queue."""
        ingestor, queue = make_ingestor()
        ingestor.ingest([], [{"args": {"ethPrice": 1, "callerAddress": "0xabc", "id": 1}}])
        assert len(queue) == 0


class TestEventIngestorSubscription:
    """Test filter installation, polling and teardown."""

    def test_subscribe_creates_filters(self) -> None:
        """Both events should be filtered from the latest block."""
        ingestor, _ = make_ingestor()
        ingestor.subscribe()

        events = ingestor.contract.events
        getattr(events, REQUEST_EVENT).create_filter.assert_called_once_with(
            from_block="latest"
        )
        getattr(events, PRICE_SET_EVENT).create_filter.assert_called_once_with(
            from_block="latest"
        )

    @pytest.mark.asyncio
    async def test_poll_queues_new_entries(self) -> None:
        ingestor, queue = make_ingestor()
        events = ingestor.contract.events
        getattr(events, REQUEST_EVENT).create_filter.return_value.get_new_entries.return_value = [
            make_event(1),
            make_event(2),
        ]
        getattr(events, PRICE_SET_EVENT).create_filter.return_value.get_new_entries.return_value = []
        ingestor.subscribe()

        assert await ingestor.poll() == 2
        assert [r.id for r in queue.snapshot()] == [1, 2]

    @pytest.mark.asyncio
    async def test_run_survives_poll_errors(self) -> None:
        """A failing poll should be logged and the loop should continue."""
        ingestor, queue = make_ingestor(poll_interval=0.01)
        events = ingestor.contract.events
        request_filter = getattr(events, REQUEST_EVENT).create_filter.return_value
        request_filter.get_new_entries.side_effect = [
            ConnectionError("node down"),
            [make_event(7)],
        ] + [[]] * 1000
        getattr(events, PRICE_SET_EVENT).create_filter.return_value.get_new_entries.return_value = []

        task = asyncio.create_task(ingestor.run())
        await asyncio.sleep(0.2)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert [r.id for r in queue.snapshot()] == [7]

    @pytest.mark.asyncio
    async def test_price_set_error_keeps_requests(self, caplog) -> None:
        """Requests already read are queued even if the price set read fails."""
        ingestor, queue = make_ingestor()
        events = ingestor.contract.events
        request_filter = getattr(events, REQUEST_EVENT).create_filter.return_value
        request_filter.get_new_entries.side_effect = [[make_event(1), make_event(2)], [], []]
        price_set_filter = getattr(events, PRICE_SET_EVENT).create_filter.return_value
        price_set_filter.get_new_entries.side_effect = [ConnectionError("blip"), [], []]
        ingestor.subscribe()

        for _ in range(3):
            await ingestor.poll()

        assert [r.id for r in queue.snapshot()] == [1, 2]
        assert "Error polling SetLatestEthPriceEvent" in caplog.text

    @pytest.mark.asyncio
    async def test_request_error_still_reads_price_set(self) -> None:
        ingestor, queue = make_ingestor()
        events = ingestor.contract.events
        request_filter = getattr(events, REQUEST_EVENT).create_filter.return_value
        request_filter.get_new_entries.side_effect = ConnectionError("blip")
        price_set_filter = getattr(events, PRICE_SET_EVENT).create_filter.return_value
        price_set_filter.get_new_entries.return_value = []
        ingestor.subscribe()

        assert await ingestor.poll() == 0
        price_set_filter.get_new_entries.assert_called_once()

    @pytest.mark.asyncio
    async def test_lost_filter_is_reinstalled(self) -> None:
        """A filter the node forgot should be recreated and polling resumed."""
        ingestor, queue = make_ingestor()
        events = ingestor.contract.events
        lost_filter = MagicMock()
        lost_filter.get_new_entries.side_effect = ValueError(
            {"code": -32000, "message": "filter not found"}
        )
        new_filter = MagicMock()
        new_filter.get_new_entries.return_value = [make_event(9)]
        getattr(events, REQUEST_EVENT).create_filter.side_effect = [lost_filter, new_filter]
        getattr(events, PRICE_SET_EVENT).create_filter.return_value.get_new_entries.return_value = []
        ingestor.subscribe()

        assert await ingestor.poll() == 0
        assert getattr(events, REQUEST_EVENT).create_filter.call_count == 2
        ingestor.w3.eth.uninstall_filter.assert_called_once_with(lost_filter.filter_id)

        assert await ingestor.poll() == 1
        assert [r.id for r in queue.snapshot()] == [9]

    @pytest.mark.asyncio
    async def test_other_errors_do_not_reinstall(self) -> None:
        ingestor, _ = make_ingestor()
        events = ingestor.contract.events
        request_filter = getattr(events, REQUEST_EVENT).create_filter.return_value
        request_filter.get_new_entries.side_effect = ConnectionError("node down")
        getattr(events, PRICE_SET_EVENT).create_filter.return_value.get_new_entries.return_value = []
        ingestor.subscribe()

        await ingestor.poll()

        assert getattr(events, REQUEST_EVENT).create_filter.call_count == 1
        ingestor.w3.eth.uninstall_filter.assert_not_called()

    def test_resubscribe_failure_is_logged(self, caplog) -> None:
        ingestor, _ = make_ingestor()
        ingestor.subscribe()
        getattr(ingestor.contract.events, REQUEST_EVENT).create_filter.side_effect = (
            ConnectionError("node down")
        )

        ingestor.resubscribe(REQUEST_EVENT)

        assert "Failed to resubscribe to GetLatestEthPriceEvent" in caplog.text

    def test_close_uninstalls_filters(self) -> None:
        ingestor, _ = make_ingestor()
        ingestor.subscribe()
        ingestor.close()

        assert ingestor.w3.eth.uninstall_filter.call_count == 2

    def test_close_logs_uninstall_failure(self, caplog) -> None:
        ingestor, _ = make_ingestor()
        ingestor.subscribe()
        ingestor.w3.eth.uninstall_filter.side_effect = ValueError("filter not found")

        ingestor.close()

        assert "Failed to uninstall" in caplog.text
