"""Fakes shared by relay tests."""

from __future__ import annotations

import asyncio

from relay.src.fetchers import BaseFetcher, FetcherError


class ScriptedFetcher(BaseFetcher):
    """Fetcher replaying a script of prices and exceptions."""

    name = "scripted"

    def __init__(self, script: list[str | BaseException], delay: float = 0.0):
        super().__init__()
        self.script = list(script)
        self.delay = delay
        self.calls = 0

    async def fetch_price(self, symbol: str) -> str:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.script.pop(0) if self.script else FetcherError("script exhausted")
        if isinstance(result, BaseException):
            raise result
        return result


class RecordingWriter:
    """Writer that records submissions instead of sending transactions."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.calls: list[tuple[str, str, int]] = []

    async def set_latest_price(
        self, caller_address: str, price: str, request_id: int
    ) -> bool:
        self.calls.append((caller_address, price, request_id))
        return self.succeed


def make_event(request_id: int, caller: str = "0xCaller") -> dict:
    """Build a decoded ``GetLatestEthPriceEvent`` log entry."""
    return {
        "event": "GetLatestEthPriceEvent",
        "args": {"callerAddress": caller, "id": request_id},
    }


