"""
Utility functions for operator registration.

Provides salt and expiry generation, and hex encoding.
"""

import secrets
import time
from typing import Callable, Optional, Union

SALT_LENGTH = 32
DEFAULT_EXPIRY_WINDOW = 3600


def left_pad(data: bytes, length: int = SALT_LENGTH) -> bytes:
    """Left-pad bytes with zeros to exactly `length` bytes."""
    if len(data) > length:
        raise ValueError(f"Value is {len(data)} bytes, longer than {length}")
    return b"\x00" * (length - len(data)) + data


def generate_salt() -> bytes:
    """Generate a fresh 32-byte registration salt."""
    return left_pad(secrets.token_bytes(SALT_LENGTH))


def compute_expiry(
    window_seconds: int = DEFAULT_EXPIRY_WINDOW,
    clock: Optional[Callable[[], float]] = None
) -> int:
    """
    Compute a signature expiry as whole-second now plus the window.

    Args:
        window_seconds: Validity window in seconds
        clock: Time source returning Unix seconds (default: time.time)
    """
    clock = clock or time.time
    return int(clock()) + window_seconds


def to_hex(data: Union[bytes, bytearray]) -> str:
    """Encode bytes as 0x-prefixed lowercase hex."""
    return "0x" + bytes(data).hex()


def from_hex(s: str) -> bytes:
    """Decode hex with or without 0x prefix."""
    if s.startswith(("0x", "0X")):
        s = s[2:]
    return bytes.fromhex(s)


def validate_hex_string(s: str, expected_bytes: int = None) -> bool:
    """Validate that a string is hex, optionally of an exact byte length."""
    try:
        raw = from_hex(s)
    except (ValueError, TypeError, AttributeError):
        return False
    if expected_bytes is not None and len(raw) != expected_bytes:
        return False
    return True
