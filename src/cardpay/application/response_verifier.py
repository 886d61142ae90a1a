"""Verification of the bank callback appended to RURL."""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Union

from pydantic import ValidationError

from ..crypto.signing import ProtocolVariant, sign, signatures_match
from ..domain.entities import BankCallback, HmacBankCallback, LegacyBankCallback
from ..domain.errors import (
    ConfigurationError,
    MalformedCallback,
    UnsupportedCharacters,
)
from ..env import Settings

logger = logging.getLogger(__name__)

CALLBACK_PARAMETERS: dict[ProtocolVariant, tuple[str, ...]] = {
    ProtocolVariant.LEGACY: ("VS", "RES", "AC", "SIGN"),
    ProtocolVariant.HMAC256: (
        "AMT",
        "CURR",
        "VS",
        "RES",
        "AC",
        "TID",
        "TIMESTAMP",
        "HMAC",
    ),
}
OPTIONAL_PARAMETERS = frozenset({"AC"})

_CALLBACK_TYPES: dict[ProtocolVariant, type[BankCallback]] = {
    ProtocolVariant.LEGACY: LegacyBankCallback,
    ProtocolVariant.HMAC256: HmacBankCallback,
}


def parse_callback(
    variant: Union[ProtocolVariant, str], params: Mapping[str, Optional[str]]
) -> BankCallback:
    """Build a callback from the gateway's query/form parameters.

    AC may be absent or empty. Every other parameter is required. The signed
    message is ASCII, so any other character makes the callback malformed.

    Raises:
        MalformedCallback: if a required parameter is missing or malformed.
    """
    variant = ProtocolVariant(variant)
    names = CALLBACK_PARAMETERS[variant]
    missing = tuple(
        name
        for name in names
        if name not in OPTIONAL_PARAMETERS and not params.get(name)
    )
    if missing:
        raise MalformedCallback(
            f"Bank callback is missing required parameters: {', '.join(missing)}",
            missing=missing,
        )
    non_ascii = tuple(name for name in names if not (params.get(name) or "").isascii())
    if non_ascii:
        raise MalformedCallback(
            f"Bank callback has non-ASCII parameters: {', '.join(non_ascii)}"
        )

    data = {name.lower(): params.get(name) for name in names}
    try:
        return _CALLBACK_TYPES[variant].model_validate(data)
    except ValidationError as e:
        raise MalformedCallback(f"Bank callback has malformed parameters: {e}") from e


def callback_signature(callback: BankCallback, hex_key: str) -> str:
    """Signature the bank should have produced for ``callback``."""
    try:
        return sign(
            callback.variant,
            [value for _, value in callback.signing_fields()],
            hex_key,
        )
    except UnsupportedCharacters as e:
        raise MalformedCallback(f"Bank callback cannot be signed: {e}") from e


def signature_matches(callback: BankCallback, hex_key: str) -> bool:
    """Recompute the callback signature and compare it with the supplied one."""
    return signatures_match(
        callback.variant,
        callback_signature(callback, hex_key),
        callback.supplied_signature,
    )


def verify_callback(callback: BankCallback, hex_key: str) -> bool:
    """Return True iff the supplied signature matches the callback fields.

    A mismatch is a normal outcome and never raises.

    Raises:
        MalformedCallback: if a field cannot be part of the signed message.
    """
    # Imported here: the self test verifies its own callbacks through this module.
    from .self_test import ensure_self_test

    ensure_self_test()
    if signature_matches(callback, hex_key):
        return True
    logger.warning(
        "CardPay callback signature mismatch (variant=%s, VS=%s, RES=%s)",
        callback.variant.value,
        callback.vs,
        callback.res,
    )
    return False


def check_bank_response(
    params: Mapping[str, Optional[str]],
    *,
    variant: Union[ProtocolVariant, str, None] = None,
    hex_key: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> bool:
    """Parse and verify a callback in one step.

    ``variant`` and ``hex_key`` default to the merchant settings.
    """
    if variant is None or hex_key is None:
        if settings is None:
            raise ConfigurationError(
                "Variant and secret key must be given when no settings are available"
            )
        if variant is None:
            variant = settings.variant
        if hex_key is None:
            hex_key = settings.hex_key.get_secret_value()
    return verify_callback(parse_callback(variant, params), hex_key)
