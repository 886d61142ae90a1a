"""Legacy CardPay signature (AES-256 generation).

    hash = SHA1(message)
    SIGN = HEX(AES256_ECB(hash[0:16], key))

ECB without padding is only acceptable here because the plaintext is always a
single opaque 16-byte digest block.
"""

from __future__ import annotations

import hashlib
from typing import Final

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .hex_codec import decode_key, encode_hex

KEY_SIZE: Final[int] = 32
BLOCK_SIZE: Final[int] = 16


def digest_block(message: bytes) -> bytes:
    """First AES block (16 bytes) of the SHA-1 digest of ``message``."""
    return hashlib.sha1(message).digest()[:BLOCK_SIZE]


def encrypt_block(block: bytes, key: bytes) -> bytes:
    """Encrypt exactly one 16-byte block with AES-256 in ECB mode, no padding."""
    if len(block) != BLOCK_SIZE:
        raise ValueError(f"block must be {BLOCK_SIZE} bytes")
    if len(key) != KEY_SIZE:
        raise ValueError(f"key must be {KEY_SIZE} bytes")
    encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    return encryptor.update(block) + encryptor.finalize()


def sign_message(message: bytes, hex_key: str) -> str:
    """Return the 32 character uppercase hex signature of ``message``."""
    key = decode_key(hex_key, KEY_SIZE)
    return encode_hex(encrypt_block(digest_block(message), key), upper=True)
