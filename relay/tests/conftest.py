"""Shared fixtures for relay tests."""

import pytest

from relay.src.OracleRequest import OracleRequest


@pytest.fixture
def requests_abc() -> list[OracleRequest]:
    return [
        OracleRequest(1, "0xA"),
        OracleRequest(2, "0xB"),
        OracleRequest(3, "0xC"),
    ]
