from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError, field_validator

from .crypto.hex_codec import check_key
from .crypto.signing import ProtocolVariant
from .domain.errors import ConfigurationError, InvalidKeyEncoding

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """Merchant configuration, resolved once and passed explicitly."""

    model_config = ConfigDict(frozen=True)

    mid: int
    hex_key: SecretStr
    form_action_url: Optional[str] = None
    variant: ProtocolVariant = ProtocolVariant.HMAC256
    log_level: str = "INFO"

    @field_validator("mid")
    @classmethod
    def validate_mid(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Merchant id must be a positive integer")
        return v

    @field_validator("hex_key")
    @classmethod
    def validate_hex_key(cls, v: SecretStr) -> SecretStr:
        """Validate that the secret decodes as hex without echoing it."""
        try:
            check_key(v.get_secret_value())
        except InvalidKeyEncoding as e:
            raise ValueError(f"Invalid CardPay secret key: {e}") from e
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level {v!r}")
        return level


def build_settings(**values: object) -> Settings:
    """Validate settings, turning pydantic errors into ConfigurationError."""
    try:
        return Settings(**values)
    except ValidationError as e:
        # str(e) echoes input values, which may include the secret key.
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid CardPay configuration: {problems}") from None


def get_settings() -> Settings:
    """Return typed settings instance sourced from env vars."""
    mid_str = os.environ.get("CARDPAY_MID")
    hex_key = os.environ.get("CARDPAY_HEX_KEY")
    if not mid_str:
        raise ConfigurationError("CARDPAY_MID is not set")
    if not hex_key:
        raise ConfigurationError("CARDPAY_HEX_KEY is not set")
    try:
        mid = int(mid_str)
    except ValueError as e:
        raise ConfigurationError(f"CARDPAY_MID is not an integer: {mid_str!r}") from e

    return build_settings(
        mid=mid,
        hex_key=hex_key,
        form_action_url=os.environ.get("CARDPAY_FORM_ACTION_URL"),
        variant=os.environ.get("CARDPAY_VARIANT", ProtocolVariant.HMAC256.value).lower(),
        log_level=os.environ.get("CARDPAY_LOG_LEVEL", "INFO"),
    )
