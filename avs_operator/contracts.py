"""
Contract Capabilities

The registration flow reaches the chain only through the small interfaces
defined here: read the account nonce, submit a transaction and wait for it,
and make a read-only call. The web3.py bindings below implement them against
a JSON-RPC endpoint; tests substitute in-memory doubles.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional

from web3 import Web3
from web3.contract.contract import ContractFunction

from .abis import AVS_DIRECTORY_ABI, DELEGATION_MANAGER_ABI, ECDSA_STAKE_REGISTRY_ABI
from .config import OperatorConfig
from .envelope import SignatureWithSaltAndExpiry
from .errors import TransactionFailedError
from .signing import OperatorIdentity
from .util import to_hex

logger = logging.getLogger(__name__)


# =============================================================================
# CAPABILITY INTERFACES
# =============================================================================

class PendingTransaction(ABC):
    """A submitted transaction that can be waited on."""

    tx_hash: str

    @abstractmethod
    def wait(self) -> Dict[str, Any]:
        """
        Block until the transaction is mined.

        Returns:
            The receipt as a dict

        Raises:
            TransactionFailedError: if the receipt status is 0
        """
        pass


class ChainClient(ABC):
    """Read access to account state."""

    @abstractmethod
    def get_transaction_count(self, address: str) -> int:
        """Return the account's next nonce."""
        pass


class DelegationManager(ABC):

    @abstractmethod
    def register_as_operator(
        self,
        delegation_approver: str,
        allocation_delay: int,
        metadata_uri: str
    ) -> PendingTransaction:
        pass


class AVSDirectory(ABC):

    @abstractmethod
    def initialize(
        self,
        initial_owner: str,
        initial_paused_status: int,
        nonce: Optional[int] = None
    ) -> PendingTransaction:
        pass

    @abstractmethod
    def calculate_operator_avs_registration_digest_hash(
        self,
        operator: str,
        avs: str,
        salt: bytes,
        expiry: int
    ) -> bytes:
        """Read-only: compute the digest the operator must sign."""
        pass


class StakeRegistry(ABC):

    @abstractmethod
    def register_operator_with_signature(
        self,
        envelope: SignatureWithSaltAndExpiry,
        signing_key: str
    ) -> PendingTransaction:
        pass


@dataclass
class RegistrationContracts:
    """The collaborators one registration run needs."""
    chain: ChainClient
    delegation_manager: DelegationManager
    avs_directory: AVSDirectory
    stake_registry: StakeRegistry


# =============================================================================
# WEB3 BINDINGS
# =============================================================================

class Web3PendingTransaction(PendingTransaction):

    def __init__(self, w3: Web3, tx_hash: bytes, timeout: float, step: str = ""):
        self._w3 = w3
        self._raw_hash = tx_hash
        self.tx_hash = to_hex(tx_hash)
        self._timeout = timeout
        self._step = step

    def wait(self) -> Dict[str, Any]:
        logger.debug("Waiting for %s receipt: %s", self._step or "transaction", self.tx_hash)
        receipt = dict(self._w3.eth.wait_for_transaction_receipt(
            self._raw_hash, timeout=self._timeout
        ))
        if receipt.get("status") == 0:
            raise TransactionFailedError(self.tx_hash, receipt, self._step)
        return receipt


class Web3ChainClient(ChainClient):

    def __init__(self, w3: Web3, block_identifier: str = "pending"):
        self._w3 = w3
        self._block_identifier = block_identifier

    def get_transaction_count(self, address: str) -> int:
        return self._w3.eth.get_transaction_count(address, self._block_identifier)


class _Web3ContractBinding:
    """Signs transactions locally with the operator key and sends them raw."""

    abi: ClassVar[List[Dict[str, Any]]] = []

    def __init__(
        self,
        w3: Web3,
        address: str,
        identity: OperatorIdentity,
        receipt_timeout: float = 120.0
    ):
        self._w3 = w3
        self._identity = identity
        self._receipt_timeout = receipt_timeout
        self.contract = w3.eth.contract(address=Web3.to_checksum_address(address), abi=self.abi)

    @property
    def address(self) -> str:
        return self.contract.address

    def _transact(
        self,
        fn: ContractFunction,
        step: str,
        nonce: Optional[int] = None
    ) -> Web3PendingTransaction:
        sender = self._identity.address
        if nonce is None:
            nonce = self._w3.eth.get_transaction_count(sender, "pending")
        tx = fn.build_transaction({"from": sender, "nonce": nonce})
        raw = self._identity.sign_transaction(tx)
        tx_hash = self._w3.eth.send_raw_transaction(raw)
        logger.debug("Sent %s transaction %s (nonce %d)", step, to_hex(tx_hash), nonce)
        return Web3PendingTransaction(self._w3, bytes(tx_hash), self._receipt_timeout, step)


class Web3DelegationManager(_Web3ContractBinding, DelegationManager):
    abi = DELEGATION_MANAGER_ABI

    def register_as_operator(
        self,
        delegation_approver: str,
        allocation_delay: int,
        metadata_uri: str
    ) -> PendingTransaction:
        fn = self.contract.functions.registerAsOperator(
            delegation_approver, allocation_delay, metadata_uri
        )
        return self._transact(fn, "registerAsOperator")


class Web3AVSDirectory(_Web3ContractBinding, AVSDirectory):
    abi = AVS_DIRECTORY_ABI

    def initialize(
        self,
        initial_owner: str,
        initial_paused_status: int,
        nonce: Optional[int] = None
    ) -> PendingTransaction:
        fn = self.contract.functions.initialize(initial_owner, initial_paused_status)
        return self._transact(fn, "initialize", nonce=nonce)

    def calculate_operator_avs_registration_digest_hash(
        self,
        operator: str,
        avs: str,
        salt: bytes,
        expiry: int
    ) -> bytes:
        fn = self.contract.functions.calculateOperatorAVSRegistrationDigestHash(
            operator, avs, salt, expiry
        )
        return bytes(fn.call())


class Web3StakeRegistry(_Web3ContractBinding, StakeRegistry):
    abi = ECDSA_STAKE_REGISTRY_ABI

    def register_operator_with_signature(
        self,
        envelope: SignatureWithSaltAndExpiry,
        signing_key: str
    ) -> PendingTransaction:
        fn = self.contract.functions.registerOperatorWithSignature(
            envelope.as_contract_arg(), signing_key
        )
        return self._transact(fn, "registerOperatorWithSignature")


def bind_contracts(
    config: OperatorConfig,
    identity: Optional[OperatorIdentity] = None,
    w3: Optional[Web3] = None
) -> RegistrationContracts:
    """
    Build web3.py bindings for every contract the flow uses.

    Args:
        config: Validated configuration
        identity: Operator identity (default: derived from config)
        w3: Web3 instance (default: HTTP provider on config.rpc_url)

    Returns:
        RegistrationContracts bound to the configured addresses
    """
    identity = identity or OperatorIdentity.from_private_key(config.private_key())
    w3 = w3 or Web3(Web3.HTTPProvider(config.rpc_url))
    timeout = config.tx_receipt_timeout

    return RegistrationContracts(
        chain=Web3ChainClient(w3),
        delegation_manager=Web3DelegationManager(
            w3, config.delegation_manager_address, identity, timeout
        ),
        avs_directory=Web3AVSDirectory(
            w3, config.avs_directory_address, identity, timeout
        ),
        stake_registry=Web3StakeRegistry(
            w3, config.stake_registry_address, identity, timeout
        ),
    )
