"""
Registration Signature Envelope

The salt/expiry pair that scopes a registration digest, and the
SignatureWithSaltAndExpiry struct handed to the stake registry.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .signing import DigestSignature, SIGNATURE_LENGTH
from .util import DEFAULT_EXPIRY_WINDOW, SALT_LENGTH, compute_expiry, generate_salt, to_hex


@dataclass(frozen=True)
class RegistrationParameters:
    """Salt and expiry used for exactly one registration digest."""
    salt: bytes
    expiry: int

    def __post_init__(self):
        if len(self.salt) != SALT_LENGTH:
            raise ValueError(f"Salt must be {SALT_LENGTH} bytes, got {len(self.salt)}")
        if self.expiry < 0:
            raise ValueError("Expiry must be a non-negative Unix timestamp")


def create_registration_parameters(
    window_seconds: int = DEFAULT_EXPIRY_WINDOW,
    clock: Optional[Callable[[], float]] = None,
    salt_factory: Callable[[], bytes] = generate_salt
) -> RegistrationParameters:
    """Generate a fresh salt and an expiry `window_seconds` from now."""
    return RegistrationParameters(
        salt=salt_factory(),
        expiry=compute_expiry(window_seconds, clock),
    )


@dataclass(frozen=True)
class SignatureWithSaltAndExpiry:
    """
    Operator signature envelope.

    The salt and expiry must be the ones the signed digest was computed
    from; the registry recomputes the digest and rejects any mismatch.
    """
    signature: bytes
    salt: bytes
    expiry: int

    def __post_init__(self):
        if len(self.signature) != SIGNATURE_LENGTH:
            raise ValueError(
                f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(self.signature)}"
            )
        if len(self.salt) != SALT_LENGTH:
            raise ValueError(f"Salt must be {SALT_LENGTH} bytes, got {len(self.salt)}")

    @classmethod
    def build(
        cls,
        signature: DigestSignature,
        params: RegistrationParameters
    ) -> "SignatureWithSaltAndExpiry":
        return cls(signature=signature.serialized, salt=params.salt, expiry=params.expiry)

    def as_contract_arg(self) -> Tuple[bytes, bytes, int]:
        """Tuple in struct field order (signature, salt, expiry)."""
        return (self.signature, self.salt, self.expiry)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature": to_hex(self.signature),
            "salt": to_hex(self.salt),
            "expiry": self.expiry,
        }
