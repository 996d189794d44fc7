"""RequestQueue: In-memory FIFO buffer of pending oracle requests.

The queue is not persisted. Whatever is pending when the process exits
is lost.

.. code-block:: python

    >>> queue = RequestQueue()
    >>> queue.push(OracleRequest(1, "0xabc"))
    >>> len(queue)
    1
    >>> queue.pop()
    OracleRequest(id=1, caller_address='0xabc')
"""

from __future__ import annotations

from collections import deque

from .OracleRequest import OracleRequest


class RequestQueue:
    """FIFO queue shared by the event ingestor and the batch scheduler.

    The ingestor only appends at the back and the scheduler only removes
    from the front. Both run on the same event loop, so no locking is used.

    :ivar total_enqueued: Requests pushed since creation.
    :ivar total_dequeued: Requests popped since creation.
    """

    def __init__(self) -> None:
        self._pending: deque[OracleRequest] = deque()
        self.total_enqueued = 0
        self.total_dequeued = 0

    def push(self, request: OracleRequest) -> None:
        """Append a request at the back of the queue.

        :param request: Request to enqueue.
        """
        self._pending.append(request)
        self.total_enqueued += 1

    def pop(self) -> OracleRequest | None:
        """Remove and return the request at the front of the queue.

        :returns: Oldest pending request, or None if the queue is empty.
        """
        if not self._pending:
            return None
        self.total_dequeued += 1
        return self._pending.popleft()

    def snapshot(self) -> list[OracleRequest]:
        """Return the pending requests in processing order."""
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)
