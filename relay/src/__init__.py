"""
Oracle Request Relay

This module relays price requests from an on-chain oracle contract:
- OracleRequest: A pending request emitted by the contract
- RequestQueue: In-memory FIFO of pending requests
- EventIngestor: Contract event subscription feeding the queue
- BatchScheduler: Timer draining the queue in bounded chunks
- RetryEngine: Per-request fetch/retry/sentinel state machine
- PriceWriter: Fixed-point conversion and on-chain writeback
- PriceRelay: Main orchestrator
- fetchers: Price source implementations
"""

from .BatchScheduler import BatchScheduler
from .EventIngestor import EventIngestor
from .OracleRequest import OracleRequest
from .PriceRelay import PriceRelay
from .PriceWriter import (
    FEED_DECIMALS,
    ONCHAIN_DECIMALS,
    PRICE_SCALE,
    SENTINEL_PRICE,
    PriceWriter,
    to_fixed_point,
)
from .RequestQueue import RequestQueue
from .RetryEngine import RequestOutcome, RequestState, RetryEngine

__all__ = [
    "BatchScheduler",
    "EventIngestor",
    "FEED_DECIMALS",
    "ONCHAIN_DECIMALS",
    "OracleRequest",
    "PRICE_SCALE",
    "PriceRelay",
    "PriceWriter",
    "RequestOutcome",
    "RequestQueue",
    "RequestState",
    "RetryEngine",
    "SENTINEL_PRICE",
    "to_fixed_point",
]
