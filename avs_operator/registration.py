"""
Operator Registration Flow

Registers the operator account with an AVS in five strictly sequential steps:

1. Core registration with the delegation manager (failure is logged and
   tolerated, so re-running for an already registered operator works)
2. AVS directory initialization, with the nonce pinned from an explicit
   snapshot
3. Registration digest computation (read-only call) over a fresh salt and
   an expiry one window from now
4. Raw ECDSA signing of the digest with the operator key
5. Submission of the signature envelope to the stake registry

Every failure after step 1 propagates and aborts the run. There are no
retries and no cleanup: a run that fails after step 2 is recovered by
running again.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from web3.exceptions import Web3Exception

from .config import OperatorConfig
from .contracts import RegistrationContracts, bind_contracts
from .envelope import (
    RegistrationParameters,
    SignatureWithSaltAndExpiry,
    create_registration_parameters,
)
from .errors import DigestError, SignatureMismatchError, TransactionFailedError
from .logging_config import events, set_run_id
from .signing import DIGEST_LENGTH, DigestSignature, OperatorIdentity, recover_signer
from .util import DEFAULT_EXPIRY_WINDOW, generate_salt, to_hex

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
DEFAULT_ALLOCATION_DELAY = 0
DEFAULT_METADATA_URI = ""
DIRECTORY_INITIAL_PAUSED_STATUS = 0

# Errors from core registration that the flow tolerates
CORE_REGISTRATION_ERRORS = (Web3Exception, TransactionFailedError)


@dataclass
class RegistrationResult:
    """Outcome of one registration run."""
    run_id: str
    operator: str
    service_manager: str
    directory_nonce: int
    directory_tx_hash: str
    digest: bytes
    envelope: SignatureWithSaltAndExpiry
    registry_tx_hash: str
    core_tx_hash: Optional[str] = None
    core_registration_error: Optional[str] = None

    @property
    def core_registration_skipped(self) -> bool:
        return self.core_registration_error is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "operator": self.operator,
            "service_manager": self.service_manager,
            "core_tx_hash": self.core_tx_hash,
            "core_registration_skipped": self.core_registration_skipped,
            "core_registration_error": self.core_registration_error,
            "directory_nonce": self.directory_nonce,
            "directory_tx_hash": self.directory_tx_hash,
            "digest": to_hex(self.digest),
            "envelope": self.envelope.to_dict(),
            "registry_tx_hash": self.registry_tx_hash,
        }


@dataclass
class _CoreOutcome:
    tx_hash: Optional[str] = None
    error: Optional[str] = None


class OperatorRegistrationFlow:
    """
    Orchestrates the registration handshake for one operator.

    Args:
        identity: Operator address and signing key
        contracts: Chain client and contract capabilities
        service_manager: Address of the AVS service manager
        expiry_window: Signature validity window in seconds
        clock: Time source for the expiry (default: time.time)
        salt_factory: Salt source (default: 32 random bytes)
    """

    def __init__(
        self,
        identity: OperatorIdentity,
        contracts: RegistrationContracts,
        service_manager: str,
        expiry_window: int = DEFAULT_EXPIRY_WINDOW,
        clock: Optional[Callable[[], float]] = None,
        salt_factory: Callable[[], bytes] = generate_salt
    ):
        self.identity = identity
        self.contracts = contracts
        self.service_manager = service_manager
        self.expiry_window = expiry_window
        self._clock = clock
        self._salt_factory = salt_factory

    @classmethod
    def from_config(
        cls,
        config: OperatorConfig,
        contracts: Optional[RegistrationContracts] = None
    ) -> "OperatorRegistrationFlow":
        identity = OperatorIdentity.from_private_key(config.private_key())
        return cls(
            identity=identity,
            contracts=contracts or bind_contracts(config, identity),
            service_manager=config.service_manager_address,
            expiry_window=config.expiry_window_seconds,
        )

    @property
    def operator(self) -> str:
        return self.identity.address

    def run(self) -> RegistrationResult:
        """Execute all five steps and return the result."""
        run_id = set_run_id()
        logger.info("Registering operator %s with AVS %s", self.operator, self.service_manager)

        core = self.register_core()
        nonce, directory_tx = self.initialize_directory()
        params = create_registration_parameters(
            self.expiry_window, self._clock, self._salt_factory
        )
        digest = self.compute_digest(params)
        signature = self.sign_digest(digest)
        envelope = SignatureWithSaltAndExpiry.build(signature, params)
        registry_tx = self.submit_registration(envelope)

        return RegistrationResult(
            run_id=run_id,
            operator=self.operator,
            service_manager=self.service_manager,
            directory_nonce=nonce,
            directory_tx_hash=directory_tx,
            digest=digest,
            envelope=envelope,
            registry_tx_hash=registry_tx,
            core_tx_hash=core.tx_hash,
            core_registration_error=core.error,
        )

    def register_core(self) -> _CoreOutcome:
        """Step 1: declare the account an operator; tolerated on failure."""
        try:
            tx = self.contracts.delegation_manager.register_as_operator(
                ZERO_ADDRESS, DEFAULT_ALLOCATION_DELAY, DEFAULT_METADATA_URI
            )
            tx.wait()
        except CORE_REGISTRATION_ERRORS as e:
            events.core_registration_skipped(self.operator, e)
            return _CoreOutcome(error=str(e))
        events.core_registered(self.operator, tx.tx_hash)
        return _CoreOutcome(tx_hash=tx.tx_hash)

    def initialize_directory(self) -> Tuple[int, str]:
        """
        Step 2: initialize the directory entry.

        The nonce is read just before sending and passed explicitly.

        Returns:
            Tuple of (nonce used, transaction hash)
        """
        nonce = self.contracts.chain.get_transaction_count(self.operator)
        tx = self.contracts.avs_directory.initialize(
            self.operator, DIRECTORY_INITIAL_PAUSED_STATUS, nonce=nonce
        )
        tx.wait()
        events.directory_initialized(self.operator, nonce, tx.tx_hash)
        return nonce, tx.tx_hash

    def compute_digest(self, params: RegistrationParameters) -> bytes:
        """Step 3: ask the directory for the registration digest."""
        digest = self.contracts.avs_directory.calculate_operator_avs_registration_digest_hash(
            self.operator, self.service_manager, params.salt, params.expiry
        )
        digest = bytes(digest)
        if len(digest) != DIGEST_LENGTH:
            raise DigestError(
                f"Directory returned a {len(digest)}-byte digest, expected {DIGEST_LENGTH}"
            )
        events.digest_computed(to_hex(digest), to_hex(params.salt), params.expiry)
        return digest

    def sign_digest(self, digest: bytes) -> DigestSignature:
        """Step 4: sign the digest and check it recovers to the operator."""
        signature = self.identity.sign_digest(digest)
        recovered = recover_signer(digest, signature)
        if recovered != self.operator:
            raise SignatureMismatchError(self.operator, recovered)
        events.digest_signed(self.operator, to_hex(digest))
        return signature

    def submit_registration(self, envelope: SignatureWithSaltAndExpiry) -> str:
        """Step 5: register with the stake registry."""
        logger.info("Registering operator to AVS registry contract")
        tx = self.contracts.stake_registry.register_operator_with_signature(
            envelope, self.operator
        )
        tx.wait()
        events.operator_registered(self.operator, self.service_manager, tx.tx_hash)
        return tx.tx_hash


def register_operator(
    config: Optional[OperatorConfig] = None,
    contracts: Optional[RegistrationContracts] = None
) -> RegistrationResult:
    """
    Register the configured operator with the AVS.

    Args:
        config: Configuration (default: loaded from the environment)
        contracts: Contract capabilities (default: web3.py bindings)

    Returns:
        RegistrationResult for the run
    """
    if config is None:
        config = OperatorConfig.from_env()
    return OperatorRegistrationFlow.from_config(config, contracts).run()
