"""
Operator Registration Errors

Two tiers: failures of the core registration step are logged and the flow
continues; everything raised from later steps aborts the run.
"""

from typing import Any, Dict, List, Optional


class OperatorRegistrationError(Exception):
    """Base class for errors raised by the registration flow."""


class ConfigurationError(OperatorRegistrationError):
    """Raised when required configuration is missing or malformed."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


class TransactionFailedError(OperatorRegistrationError):
    """Raised when a transaction is mined but reverted (receipt status 0)."""

    def __init__(self, tx_hash: str, receipt: Optional[Dict[str, Any]] = None, step: str = ""):
        self.tx_hash = tx_hash
        self.receipt = receipt
        self.step = step
        label = f"{step} " if step else ""
        super().__init__(f"Transaction {label}reverted: {tx_hash}")


class DigestError(OperatorRegistrationError):
    """Raised when the directory returns something other than a 32-byte digest."""


class SignatureMismatchError(OperatorRegistrationError):
    """Raised when a signature does not recover to the operator address."""

    def __init__(self, expected: str, recovered: str):
        self.expected = expected
        self.recovered = recovered
        super().__init__(
            f"Signature recovers to {recovered}, expected operator {expected}"
        )
