"""Canonical message construction and signature dispatch for both CardPay generations."""

from __future__ import annotations

import hmac
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Sequence, Union

from ..domain.errors import UnsupportedCharacters
from . import hmac256, legacy

AmountLike = Union[Decimal, int, float, str]

_CENT = Decimal("0.01")


class ProtocolVariant(str, Enum):
    """Signature generation in use by a merchant deployment."""

    LEGACY = "legacy"
    HMAC256 = "hmac256"

    @property
    def signature_field(self) -> str:
        """Name of the form/callback parameter carrying the signature."""
        return "SIGN" if self is ProtocolVariant.LEGACY else "HMAC"

    def normalize_signature(self, signature: str) -> str:
        """Bring a supplied signature to this variant's hex case convention."""
        if self is ProtocolVariant.LEGACY:
            return signature.upper()
        return signature.lower()


def to_decimal(amount: AmountLike) -> Decimal:
    """Convert an amount to Decimal without binary float artefacts."""
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, bool):
        raise ValueError("Amount must be a number")
    if isinstance(amount, float):
        amount = repr(amount)
    try:
        value = Decimal(amount)
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount {amount!r}") from e
    if not value.is_finite():
        raise ValueError(f"Invalid amount {amount!r}")
    return value


def format_amount(amount: AmountLike) -> str:
    """Format an amount with exactly two decimals and a '.' separator.

    Examples:
      1234.5 -> "1234.50"
      "10"   -> "10.00"
    """
    return f"{to_decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP):f}"


def canonical_string(values: Sequence[str]) -> str:
    """Concatenate field values in order, without delimiters."""
    return "".join(values)


def canonical_bytes(values: Sequence[str]) -> bytes:
    """ASCII bytes of the canonical string.

    Raises:
        UnsupportedCharacters: if any value contains non-ASCII characters.
    """
    message = canonical_string(values)
    try:
        return message.encode("ascii")
    except UnicodeEncodeError as e:
        raise UnsupportedCharacters(
            f"Cannot sign non-ASCII character {message[e.start]!r} at position {e.start}"
        ) from e


def sign(variant: ProtocolVariant, values: Sequence[str], hex_key: str) -> str:
    """Sign ordered field values with the algorithm of ``variant``.

    Pure function: no caching, no state. The self-test gate is enforced by the
    callers that sign real transactions.
    """
    message = canonical_bytes(values)
    if variant is ProtocolVariant.LEGACY:
        return legacy.sign_message(message, hex_key)
    if variant is ProtocolVariant.HMAC256:
        return hmac256.sign_message(message, hex_key)
    raise ValueError(f"Unsupported protocol variant: {variant!r}")


def signatures_match(variant: ProtocolVariant, expected: str, supplied: str) -> bool:
    """Compare two signatures in constant time after case normalization."""
    return hmac.compare_digest(
        variant.normalize_signature(expected).encode("ascii", "replace"),
        variant.normalize_signature(supplied).encode("ascii", "replace"),
    )
