"""Factory for outgoing CardPay payment requests."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional, Union
from urllib.parse import urlsplit

from ..crypto.hex_codec import check_key
from ..crypto.signing import AmountLike, ProtocolVariant
from ..domain.currency import Currency
from ..domain.entities import TIMESTAMP_FORMAT, PaymentRequest
from ..domain.errors import ConfigurationError, InvalidKeyEncoding, UnsupportedCharacters
from ..env import Settings

NAME_ALLOWED = re.compile(r"^[A-Za-z0-9 ._@-]*$")


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """Gateway timestamp (ddMMyyyyHHmmss, UTC). Defaults to now."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def validate_client_name(name: str) -> None:
    """Reject names outside the gateway's whitelist.

    Raises:
        UnsupportedCharacters: on diacritics or any other character the bank
            does not accept in NAME.
    """
    if not NAME_ALLOWED.match(name):
        bad = sorted({ch for ch in name if not NAME_ALLOWED.match(ch)})
        raise UnsupportedCharacters(
            f"NAME contains unsupported characters: {''.join(bad)!r}"
        )


def validate_return_url(url: str) -> None:
    """Require an absolute http(s) URL."""
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"RURL must be an absolute http(s) URL, got {url!r}")


def _resolve_mid(mid: Optional[int], settings: Optional[Settings]) -> int:
    if mid is not None:
        if mid <= 0:
            raise ConfigurationError(f"Merchant id must be positive, got {mid}")
        return mid
    if settings is None:
        raise ConfigurationError("Merchant id was not given and no settings are available")
    return settings.mid


def _resolve_key(hex_key: Optional[str], settings: Optional[Settings]) -> str:
    if hex_key is None:
        if settings is None:
            raise ConfigurationError(
                "Secret key was not given and no settings are available"
            )
        return settings.hex_key.get_secret_value()
    try:
        check_key(hex_key)
    except InvalidKeyEncoding as e:
        raise ConfigurationError(f"Invalid CardPay secret key: {e}") from e
    return hex_key


def create_request(
    amount: AmountLike,
    currency: Union[Currency, int],
    vs: int,
    rurl: str,
    ipc: str,
    name: str,
    *,
    variant: Optional[ProtocolVariant] = None,
    settings: Optional[Settings] = None,
    mid: Optional[int] = None,
    hex_key: Optional[str] = None,
    form_action_url: Optional[str] = None,
    timestamp: Union[str, datetime, None] = None,
    strict: bool = False,
) -> PaymentRequest:
    """Build an immutable payment request.

    Args:
        amount: Amount to charge; formatted to two decimals when signed.
        currency: Member of ``Currency`` or its numeric code.
        vs: Variable symbol (up to 10 digits).
        rurl: Return URL the gateway redirects to.
        ipc: Client IP address.
        name: Client name (up to 30 characters).
        variant: Protocol generation; defaults to ``settings.variant``.
        settings: Merchant configuration supplying defaults for ``mid``,
            ``hex_key``, ``form_action_url`` and ``variant``.
        timestamp: HMAC generation only. A ddMMyyyyHHmmss string or a
            datetime; defaults to the current UTC time.
        strict: Reject NAME characters and RURL values the gateway does not
            accept instead of passing them through.

    Raises:
        ConfigurationError: if merchant id or key cannot be resolved.
        UnsupportedCharacters: in strict mode, if NAME has disallowed characters.
        pydantic.ValidationError: if a field violates its constraints.
    """
    if variant is None:
        variant = settings.variant if settings is not None else ProtocolVariant.HMAC256
    variant = ProtocolVariant(variant)

    if strict:
        validate_client_name(name)
        validate_return_url(rurl)

    if variant is ProtocolVariant.HMAC256:
        if not isinstance(timestamp, str):
            timestamp = format_timestamp(timestamp)
    elif timestamp is not None:
        raise ValueError("TIMESTAMP is not part of legacy requests")

    if form_action_url is None and settings is not None:
        form_action_url = settings.form_action_url

    return PaymentRequest(
        variant=variant,
        mid=_resolve_mid(mid, settings),
        amount=amount,
        currency=Currency(currency),
        vs=vs,
        rurl=rurl,
        ipc=ipc,
        name=name,
        timestamp=timestamp,
        form_action_url=form_action_url,
        hex_key=_resolve_key(hex_key, settings),
    )
