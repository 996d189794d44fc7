"""OracleRequest: A caller's pending ask for the latest price."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class OracleRequest:
    """A pending request emitted by the oracle contract.

    Identity is the ``(id, caller_address)`` pair. Two events carrying the
    same id produce two independent requests.

    :ivar id: Request identifier assigned by the oracle contract.
    :ivar caller_address: Address of the contract awaiting the price.
    """

    id: int
    caller_address: str

    @classmethod
    def from_event(cls, event: Mapping[str, Any]) -> OracleRequest:
        """Build a request from a ``GetLatestEthPriceEvent`` log entry.

        :param event: Decoded log entry with an ``args`` mapping.
        :returns: New request.
        :raises KeyError: If ``callerAddress`` or ``id`` is missing.
        :raises ValueError: If ``id`` is not an integer.
        """
        args = event["args"]
        caller_address = args["callerAddress"]
        request_id = args["id"]
        if isinstance(request_id, bool):
            raise ValueError(f"Invalid request id: {request_id!r}")
        return cls(id=int(request_id), caller_address=str(caller_address))

    def __str__(self) -> str:
        return f"request #{self.id} from {self.caller_address}"
