"""Domain-specific exceptions."""

from __future__ import annotations


class CardPayError(Exception):
    """Base class for every error raised by the CardPay integration."""


class InvalidKeyEncoding(CardPayError, ValueError):
    """Raised when a secret key is not a well-formed hex string."""


class UnsupportedCharacters(CardPayError, ValueError):
    """Raised when a signed field contains characters the gateway cannot sign."""


class MalformedCallback(CardPayError):
    """Raised when a bank callback is missing a required parameter.

    This is distinct from a signature mismatch, which is a normal ``False``
    verification result.
    """

    def __init__(self, message: str, *, missing: tuple[str, ...] = ()):
        super().__init__(message)
        self.missing = missing


class ConfigurationError(CardPayError):
    """Raised when merchant id, secret key or gateway URL are missing or malformed."""


class SelfTestFailed(CardPayError):
    """Raised when a known-answer vector does not reproduce.

    Once raised the process refuses to sign anything else.
    """

    def __init__(self, vector: str, expected: str, actual: str):
        super().__init__(
            f"CardPay self test failed for vector {vector!r}: "
            f"expected {expected}, got {actual}"
        )
        self.vector = vector
        self.expected = expected
        self.actual = actual
