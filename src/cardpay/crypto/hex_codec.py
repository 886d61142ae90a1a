from __future__ import annotations

import binascii
import string

from ..domain.errors import InvalidKeyEncoding

_HEX_DIGITS = frozenset(string.hexdigits)


def encode_hex(data: bytes, *, upper: bool = False) -> str:
    """Encode raw bytes as a hex string (lowercase unless ``upper``)."""
    out = data.hex()
    return out.upper() if upper else out


def decode_hex(text: str) -> bytes:
    """Decode a hex string into raw bytes (strict validation).

    Raises:
        InvalidKeyEncoding: on odd length or non-hex characters.
    """
    if len(text) % 2:
        raise InvalidKeyEncoding(f"Hex string has odd length {len(text)}")
    # bytes.fromhex() tolerates whitespace, the gateway keys never contain any.
    if not _HEX_DIGITS.issuperset(text):
        raise InvalidKeyEncoding("Hex string contains non-hex characters")
    return binascii.unhexlify(text)


def fit_key(raw: bytes, size: int) -> bytes:
    """Zero pad or truncate key material to exactly ``size`` bytes."""
    if size <= 0:
        raise ValueError("size must be > 0")
    return raw[:size].ljust(size, b"\x00")


def check_key(hex_key: str) -> bytes:
    """Decode a hex-encoded secret, which unlike arbitrary hex must not be empty."""
    if not hex_key:
        raise InvalidKeyEncoding("Secret key cannot be empty")
    return decode_hex(hex_key)


def decode_key(hex_key: str, size: int) -> bytes:
    """Decode a hex-encoded secret into ``size`` bytes of key material."""
    return fit_key(check_key(hex_key), size)
