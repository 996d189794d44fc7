"""BatchScheduler: Drains the request queue in bounded chunks on a timer.

Every ``interval`` seconds a tick is started that pops up to ``chunk_size``
requests from the front of the queue and processes them one after another.
Ticks are started at a fixed rate and are not serialized: if a tick is
still running when the next one fires, both pop from the same queue.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .RequestQueue import RequestQueue
    from .RetryEngine import RetryEngine

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 2.0
DEFAULT_CHUNK_SIZE = 3


class BatchScheduler:
    """Periodic consumer of the request queue.

    :ivar queue: Queue to drain.
    :ivar retry_engine: Engine that takes each request to a terminal state.
    :ivar interval: Seconds between ticks.
    :ivar chunk_size: Maximum requests drained per tick.
    :ivar ticks: Ticks started so far.
    """

    def __init__(
        self,
        queue: RequestQueue,
        retry_engine: RetryEngine,
        interval: float = DEFAULT_INTERVAL,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """Initialize the scheduler.

        :raises ValueError: If interval <= 0 or chunk_size < 1.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")

        self.queue = queue
        self.retry_engine = retry_engine
        self.interval = interval
        self.chunk_size = chunk_size
        self.ticks = 0
        self._inflight: set[asyncio.Task] = set()

    async def tick(self) -> int:
        """Process at most ``chunk_size`` requests from the queue.

        A request that fails unexpectedly is logged and dropped; the tick
        moves on to the next one.

        :returns: Number of requests taken from the queue.
        """
        processed = 0
        while processed < self.chunk_size:
            request = self.queue.pop()
            if request is None:
                break
            processed += 1

            try:
                outcome = await self.retry_engine.process(request)
            except Exception:
                logger.exception(f"Unexpected error processing {request}, dropping it")
                continue

            logger.debug(
                f"{request}: {outcome.state.value} "
                f"(failed attempts={outcome.failed_attempts}, written={outcome.written})"
            )

        if processed:
            logger.debug(
                f"Tick processed {processed} requests, {len(self.queue)} pending"
            )
        return processed

    def _start_tick(self) -> asyncio.Task:
        self.ticks += 1
        task = asyncio.create_task(self.tick())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def run(self) -> None:
        """Start a tick every ``interval`` seconds until cancelled."""
        logger.info(
            f"Starting batch scheduler: interval={self.interval}s, "
            f"chunk_size={self.chunk_size}"
        )
        try:
            while True:
                await asyncio.sleep(self.interval)
                self._start_tick()
        finally:
            for task in list(self._inflight):
                task.cancel()
