"""PriceWriter: Submits prices back to the oracle contract.

The price feed publishes decimal strings with ``FEED_DECIMALS`` fractional
digits and the contract stores integers with ``ONCHAIN_DECIMALS`` implied
decimals. Conversion drops the decimal point and multiplies by
``PRICE_SCALE``, so it is only correct while the feed keeps its precision:

.. code-block:: python

    >>> to_fixed_point("2000.12345678")
    2000123456780000000000
    >>> to_fixed_point(SENTINEL_PRICE)
    0
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from web3 import Web3
    from web3.contract import Contract
    from web3.types import TxParams

logger = logging.getLogger(__name__)

# Fractional digits in prices returned by the feed.
FEED_DECIMALS = 8

# Fractional digits the oracle contract expects.
ONCHAIN_DECIMALS = 18

PRICE_SCALE = 10 ** (ONCHAIN_DECIMALS - FEED_DECIMALS)

# Submitted in place of a price when the feed could not be reached.
SENTINEL_PRICE = "0"

# Default seconds to wait for a transaction receipt.
DEFAULT_TX_TIMEOUT = 120.0


def to_fixed_point(price: str) -> int:
    """Convert a feed price to the contract's fixed-point integer.

    :param price: Decimal string such as "2000.12345678".
    :returns: Unsigned integer scaled to ``ONCHAIN_DECIMALS``.
    :raises ValueError: If price is not a plain non-negative decimal.
    """
    whole, _, fraction = price.partition(".")
    digits = whole + fraction
    if not digits.isdigit():
        raise ValueError(f"Malformed price: {price!r}")

    if price != SENTINEL_PRICE and len(fraction) != FEED_DECIMALS:
        logger.warning(
            f"Price {price} has {len(fraction)} fractional digits, "
            f"expected {FEED_DECIMALS}; submitted value will be mis-scaled"
        )

    return int(digits) * PRICE_SCALE


class PriceWriter:
    """Writes prices to the oracle contract's ``setLatestEthPrice``.

    Submission failures are logged and counted but never raised, so the
    caller always treats the request as handled.

    :ivar w3: Web3 instance with a signing middleware for ``owner_address``.
    :ivar contract: Oracle contract instance.
    :ivar owner_address: Account the transactions are sent from.
    :ivar tx_timeout: Seconds to wait for a receipt.
    :ivar submitted: Transactions confirmed with a successful status.
    :ivar failed: Submissions that failed at any stage.
    """

    def __init__(
        self,
        w3: Web3,
        contract: Contract,
        owner_address: str,
        tx_timeout: float = DEFAULT_TX_TIMEOUT,
    ) -> None:
        self.w3 = w3
        self.contract = contract
        self.owner_address = owner_address
        self.tx_timeout = tx_timeout
        self.submitted = 0
        self.failed = 0

    async def set_latest_price(
        self, caller_address: str, price: str, request_id: int
    ) -> bool:
        """Submit a price for a request.

        :param caller_address: Contract that asked for the price.
        :param price: Feed price, or ``SENTINEL_PRICE``.
        :param request_id: Request identifier from the oracle event.
        :returns: True if the transaction was mined successfully.
        """
        try:
            price_int = to_fixed_point(price)
            id_int = int(request_id)
            receipt = await asyncio.to_thread(
                self._submit, caller_address, price_int, id_int
            )
        except Exception as e:
            self.failed += 1
            logger.error(
                f"Error encountered while calling setLatestEthPrice "
                f"for request #{request_id}: {e}"
            )
            return False

        self.submitted += 1
        logger.info(
            f"Request #{request_id}: price {price} submitted for {caller_address} "
            f"(tx {receipt['transactionHash'].hex()})"
        )
        return True

    def _submit(self, caller_address: str, price_int: int, id_int: int) -> Any:
        """Build, send and confirm the transaction.

        :returns: Transaction receipt.
        :raises RuntimeError: If the transaction reverted.
        """
        tx_params: TxParams = self.contract.functions.setLatestEthPrice(
            price_int, caller_address, id_int
        ).build_transaction(
            {"from": self.owner_address, "gasPrice": self.w3.eth.gas_price}
        )

        tx_hash = self.w3.eth.send_transaction(tx_params)
        tx_receipt = self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.tx_timeout
        )

        if tx_receipt["status"] != 1:
            raise RuntimeError(f"Transaction {tx_hash.hex()} reverted")
        return tx_receipt
