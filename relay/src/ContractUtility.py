"""ContractUtility: Web3 initialization, signer account and oracle contract."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.contract import Contract
from web3.middleware import SignAndSendRawMiddlewareBuilder

logger = logging.getLogger(__name__)

NETWORKS = {
    "localnet": "http://localhost:8545",
    "sapphire": "https://sapphire.oasis.io",
    "sapphire-testnet": "https://testnet.sapphire.oasis.io",
}


def load_account(key_file: str) -> LocalAccount:
    """Load the relay's signing account from a key file.

    :param key_file: Path to a file holding a hex-encoded private key.
    :returns: Local account.
    :raises FileNotFoundError: If the key file does not exist.
    :raises ValueError: If the file does not hold a valid key.
    """
    with open(key_file, "r") as file:
        private_key = file.read().strip()
    if not private_key:
        raise ValueError(f"Key file {key_file} is empty")
    return Account.from_key(private_key)


class ContractUtility:
    """Utility for Web3 connection, account loading and contract lookup.

    :ivar network: Network RPC URL.
    :ivar w3: Web3 instance that signs transactions with ``account``.
    :ivar account: Relay signer account.
    """

    def __init__(self, network_name: str, key_file: str) -> None:
        """Initialize the contract utility.

        :param network_name: Known network name or RPC URL.
        :param key_file: Path to the relay's private key file.
        :raises RuntimeError: If the node is unreachable.
        """
        # RPC_URL env var overrides the default for the network
        self.network = os.environ.get("RPC_URL") or NETWORKS.get(network_name, network_name)

        self.account: LocalAccount = load_account(key_file)

        self.w3 = Web3(Web3.HTTPProvider(self.network))
        self.w3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(self.account))
        self.w3.eth.default_account = self.account.address

        if not self.w3.is_connected():
            raise RuntimeError(f"Cannot connect to {self.network}")

        logger.info(f"Connected to {self.network} as {self.account.address}")

    @property
    def owner_address(self) -> str:
        return self.account.address

    @staticmethod
    def get_contract(artifact_path: str) -> tuple[list, dict[str, Any]]:
        """Fetch ABI and deployments of a contract from its build artifact.

        :param artifact_path: Path to a Truffle-style JSON artifact.
        :returns: Tuple of (abi, networks).
        """
        with open(Path(artifact_path).resolve(), "r") as file:
            contract_data = json.load(file)

        abi = contract_data["abi"]
        networks = contract_data.get("networks", {})
        return abi, networks

    def get_oracle_contract(
        self, artifact_path: str, address: str | None = None
    ) -> Contract:
        """Instantiate the oracle contract.

        :param artifact_path: Path to the oracle's build artifact.
        :param address: Explicit contract address. Looked up in the
            artifact by network id when omitted.
        :returns: Contract instance.
        :raises RuntimeError: If no address is known for the network.
        """
        abi, networks = self.get_contract(artifact_path)

        if not address:
            network_id = str(self.w3.net.version)
            address = networks.get(network_id, {}).get("address")
            if not address:
                raise RuntimeError(
                    f"Oracle contract is not deployed on network {network_id}"
                )

        return self.w3.eth.contract(
            address=Web3.to_checksum_address(address), abi=abi
        )
