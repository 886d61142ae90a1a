"""CardPay HMAC signature (current generation).

    HMAC = HEX(HMAC_SHA256(key[0:64], message))
"""

from __future__ import annotations

from typing import Final

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac

from .hex_codec import decode_key, encode_hex

KEY_SIZE: Final[int] = 64


def mac_bytes(message: bytes, key: bytes) -> bytes:
    """Raw HMAC-SHA256 of ``message``."""
    h = crypto_hmac.HMAC(key, hashes.SHA256())
    h.update(message)
    return h.finalize()


def sign_message(message: bytes, hex_key: str) -> str:
    """Return the 64 character lowercase hex HMAC of ``message``."""
    key = decode_key(hex_key, KEY_SIZE)
    return encode_hex(mac_bytes(message, key))
