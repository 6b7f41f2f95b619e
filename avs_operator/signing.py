"""
Operator Digest Signing

Signs registration digests with the operator key using secp256k1 ECDSA.

The digest is signed as an opaque 32-byte value: no message prefix and no
typed-data encoding. Nonces are deterministic (RFC 6979), so signing the same
digest with the same key always yields the same signature. Signatures are
serialized in the compact r || s || v form with v in {27, 28}.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Union

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError as KeyValidationError

from .errors import ConfigurationError
from .util import from_hex, to_hex

DIGEST_LENGTH = 32
SIGNATURE_LENGTH = 65
V_OFFSET = 27


def _as_digest(digest: Union[bytes, str]) -> bytes:
    if isinstance(digest, str):
        digest = from_hex(digest)
    digest = bytes(digest)
    if len(digest) != DIGEST_LENGTH:
        raise ValueError(f"Digest must be {DIGEST_LENGTH} bytes, got {len(digest)}")
    return digest


@dataclass(frozen=True)
class DigestSignature:
    """ECDSA signature over a raw digest."""
    r: int
    s: int
    v: int

    @property
    def serialized(self) -> bytes:
        """Compact 65-byte r || s || v encoding."""
        return (
            self.r.to_bytes(32, "big")
            + self.s.to_bytes(32, "big")
            + bytes([self.v])
        )

    def to_hex(self) -> str:
        return to_hex(self.serialized)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "r": hex(self.r),
            "s": hex(self.s),
            "v": self.v,
            "serialized": self.to_hex(),
        }

    @classmethod
    def from_bytes(cls, data: Union[bytes, str]) -> "DigestSignature":
        """Parse a compact signature; v may be given as 0/1 or 27/28."""
        if isinstance(data, str):
            data = from_hex(data)
        data = bytes(data)
        if len(data) != SIGNATURE_LENGTH:
            raise ValueError(f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(data)}")
        v = data[64]
        if v in (0, 1):
            v += V_OFFSET
        if v not in (27, 28):
            raise ValueError(f"Invalid recovery id: {data[64]}")
        return cls(
            r=int.from_bytes(data[:32], "big"),
            s=int.from_bytes(data[32:64], "big"),
            v=v,
        )


@dataclass(frozen=True)
class OperatorIdentity:
    """
    The operator account: its address and the key that signs for it.

    The private key is held by the wrapped eth-account LocalAccount and is
    kept out of repr.
    """
    address: str
    account: LocalAccount = field(repr=False, compare=False)

    @classmethod
    def from_private_key(cls, private_key: str) -> "OperatorIdentity":
        try:
            account = Account.from_key(private_key)
        except (ValueError, TypeError, KeyValidationError) as e:
            raise ConfigurationError([f"PRIVATE_KEY: {e}"]) from e
        return cls(address=account.address, account=account)

    def sign_digest(self, digest: Union[bytes, str]) -> DigestSignature:
        """Sign a raw 32-byte digest with the operator key."""
        return sign_digest(digest, bytes(self.account.key))

    def sign_transaction(self, transaction: Dict[str, Any]) -> bytes:
        """Sign a transaction dict and return the raw encoded transaction."""
        signed = self.account.sign_transaction(transaction)
        return bytes(signed.raw_transaction)


# Convenience functions

def sign_digest(digest: Union[bytes, str], private_key: Union[bytes, str]) -> DigestSignature:
    """
    Sign a raw digest with a secp256k1 private key.

    Args:
        digest: 32-byte digest (bytes or hex)
        private_key: 32-byte private key (bytes or hex)

    Returns:
        DigestSignature with v in {27, 28}
    """
    if isinstance(private_key, str):
        private_key = from_hex(private_key)
    key = keys.PrivateKey(bytes(private_key))
    sig = key.sign_msg_hash(_as_digest(digest))
    return DigestSignature(r=sig.r, s=sig.s, v=sig.v + V_OFFSET)


def recover_signer(digest: Union[bytes, str], signature: Union[DigestSignature, bytes, str]) -> str:
    """Recover the checksum address that produced a digest signature."""
    if not isinstance(signature, DigestSignature):
        signature = DigestSignature.from_bytes(signature)
    sig = keys.Signature(vrs=(signature.v - V_OFFSET, signature.r, signature.s))
    public_key = sig.recover_public_key_from_msg_hash(_as_digest(digest))
    return public_key.to_checksum_address()


def verify_digest_signature(
    digest: Union[bytes, str],
    signature: Union[DigestSignature, bytes, str],
    address: str
) -> bool:
    """Check that a signature over digest recovers to address."""
    try:
        recovered = recover_signer(digest, signature)
    except (BadSignature, KeyValidationError, ValueError):
        return False
    return recovered.lower() == address.lower()
