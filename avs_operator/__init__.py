"""
avs-operator

Registers an account as an operator with an AVS: core registration with the
delegation manager, AVS directory initialization, and registration with the
ECDSA stake registry using a signature over the directory's digest.

Usage:
    from avs_operator import OperatorConfig, register_operator

    config = OperatorConfig.from_env()
    result = register_operator(config)
    print(result.registry_tx_hash)

Or from the shell:
    avs-operator register
"""

__version__ = "0.1.0"

# Configuration
from .config import OperatorConfig

# Contract capabilities
from .contracts import (
    AVSDirectory,
    ChainClient,
    DelegationManager,
    PendingTransaction,
    RegistrationContracts,
    StakeRegistry,
    bind_contracts,
)

# Envelope
from .envelope import (
    RegistrationParameters,
    SignatureWithSaltAndExpiry,
    create_registration_parameters,
)

# Errors
from .errors import (
    ConfigurationError,
    DigestError,
    OperatorRegistrationError,
    SignatureMismatchError,
    TransactionFailedError,
)

# Registration flow
from .registration import (
    OperatorRegistrationFlow,
    RegistrationResult,
    register_operator,
)

# Signing
from .signing import (
    DigestSignature,
    OperatorIdentity,
    recover_signer,
    sign_digest,
    verify_digest_signature,
)


__all__ = [
    "__version__",

    # Config
    "OperatorConfig",

    # Contracts
    "AVSDirectory",
    "ChainClient",
    "DelegationManager",
    "PendingTransaction",
    "RegistrationContracts",
    "StakeRegistry",
    "bind_contracts",

    # Envelope
    "RegistrationParameters",
    "SignatureWithSaltAndExpiry",
    "create_registration_parameters",

    # Errors
    "ConfigurationError",
    "DigestError",
    "OperatorRegistrationError",
    "SignatureMismatchError",
    "TransactionFailedError",

    # Registration
    "OperatorRegistrationFlow",
    "RegistrationResult",
    "register_operator",

    # Signing
    "DigestSignature",
    "OperatorIdentity",
    "recover_signer",
    "sign_digest",
    "verify_digest_signature",
]
