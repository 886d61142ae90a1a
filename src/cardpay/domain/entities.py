"""CardPay domain entities: PaymentRequest and the bank callbacks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)

from ..crypto.signing import ProtocolVariant, format_amount, sign, to_decimal
from .currency import Currency

TIMESTAMP_FORMAT = "%d%m%Y%H%M%S"
PAYMENT_TYPE = "CardPay"
DEFAULT_LANG = "sk"
AUTO_REDIRECT = "1"

# Field order of the signed message, per generation.
REQUEST_SIGNING_ORDER: dict[ProtocolVariant, tuple[str, ...]] = {
    ProtocolVariant.LEGACY: ("MID", "AMT", "CURR", "VS", "RURL", "IPC", "NAME"),
    ProtocolVariant.HMAC256: (
        "MID",
        "AMT",
        "CURR",
        "VS",
        "RURL",
        "IPC",
        "NAME",
        "TIMESTAMP",
    ),
}


def validate_timestamp(value: str) -> str:
    """Validate a ddMMyyyyHHmmss gateway timestamp."""
    if len(value) != 14 or not value.isdigit():
        raise ValueError("TIMESTAMP must be 14 digits in ddMMyyyyHHmmss format")
    try:
        datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError as e:
        raise ValueError(f"Invalid TIMESTAMP {value!r}: {e}") from e
    return value


class PaymentRequest(BaseModel):
    """Outgoing payment request.

    Immutable once built. Build instances with
    ``cardpay.application.request_builder.create_request``, which resolves
    merchant id and key from settings and fixes every field at once.
    The signature is derived on each read and never stored.
    """

    model_config = ConfigDict(frozen=True)

    variant: ProtocolVariant
    mid: int = Field(..., gt=0)
    amount: Decimal = Field(..., ge=0, max_digits=11, decimal_places=2)
    currency: Currency
    vs: int = Field(..., ge=0, le=9_999_999_999)
    rurl: str = Field(..., min_length=1, max_length=256)
    ipc: str = Field(..., min_length=1)
    name: str = Field(..., max_length=30)
    timestamp: Optional[str] = None
    form_action_url: Optional[str] = None
    hex_key: SecretStr = Field(..., exclude=True, repr=False)

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: object) -> Decimal:
        return to_decimal(v)  # type: ignore[arg-type]

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp_format(cls, v: Optional[str]) -> Optional[str]:
        return validate_timestamp(v) if v is not None else None

    @model_validator(mode="after")
    def check_variant_fields(self) -> "PaymentRequest":
        if self.variant is ProtocolVariant.HMAC256 and self.timestamp is None:
            raise ValueError("TIMESTAMP is required for HMAC requests")
        if self.variant is ProtocolVariant.LEGACY and self.timestamp is not None:
            raise ValueError("TIMESTAMP is not part of legacy requests")
        return self

    @property
    def pt(self) -> str:
        return PAYMENT_TYPE

    @property
    def amt(self) -> str:
        return format_amount(self.amount)

    @property
    def curr(self) -> str:
        return self.currency.code

    def field_values(self) -> dict[str, str]:
        """Every protocol field except the signature, as gateway strings."""
        values = {
            "MID": str(self.mid),
            "AMT": self.amt,
            "CURR": self.curr,
            "VS": str(self.vs),
            "RURL": self.rurl,
            "IPC": self.ipc,
            "NAME": self.name,
        }
        if self.timestamp is not None:
            values["TIMESTAMP"] = self.timestamp
        return values

    def signing_fields(self) -> list[tuple[str, str]]:
        """Ordered (name, value) pairs that make up the signed message."""
        values = self.field_values()
        return [(name, values[name]) for name in REQUEST_SIGNING_ORDER[self.variant]]

    def compute_signature(self) -> str:
        """Sign the request without consulting the self-test gate."""
        return sign(
            self.variant,
            [value for _, value in self.signing_fields()],
            self.hex_key.get_secret_value(),
        )

    @property
    def signature(self) -> str:
        # Imported here: the self test builds PaymentRequest instances itself.
        from ..application.self_test import ensure_self_test

        ensure_self_test()
        return self.compute_signature()

    def form_fields(self) -> dict[str, str]:
        """Hidden form fields for submission to the gateway, in gateway order."""
        values = self.field_values()
        if self.variant is ProtocolVariant.LEGACY:
            fields = {"PT": self.pt}
            fields.update(
                (name, values[name])
                for name in REQUEST_SIGNING_ORDER[ProtocolVariant.LEGACY]
            )
            fields[self.variant.signature_field] = self.signature
            return fields

        fields = {
            name: values[name]
            for name in ("MID", "AMT", "CURR", "VS", "RURL", "IPC", "NAME")
        }
        fields["LANG"] = DEFAULT_LANG
        fields["AREDIR"] = AUTO_REDIRECT
        fields["TIMESTAMP"] = values["TIMESTAMP"]
        fields[self.variant.signature_field] = self.signature
        return fields


class BankCallback(BaseModel, ABC):
    """Parameters the gateway appends to RURL after a payment attempt.

    Abstract: parse callbacks into LegacyBankCallback or HmacBankCallback.
    """

    model_config = ConfigDict(frozen=True)

    variant: ClassVar[ProtocolVariant]
    signing_order: ClassVar[tuple[str, ...]]

    vs: str = Field(..., pattern=r"^[0-9]{1,10}$")
    res: str
    ac: str = ""

    @field_validator("ac", mode="before")
    @classmethod
    def default_ac(cls, v: Optional[str]) -> str:
        return v or ""

    @property
    @abstractmethod
    def supplied_signature(self) -> str:
        """Signature the bank sent alongside the callback fields."""

    def field_values(self) -> dict[str, str]:
        return {"VS": self.vs, "RES": self.res, "AC": self.ac}

    def signing_fields(self) -> list[tuple[str, str]]:
        values = self.field_values()
        return [(name, values[name]) for name in self.signing_order]


class LegacyBankCallback(BankCallback):
    """Callback of the AES-256 generation: VS, RES, AC, SIGN."""

    variant: ClassVar[ProtocolVariant] = ProtocolVariant.LEGACY
    signing_order: ClassVar[tuple[str, ...]] = ("VS", "RES", "AC")

    sign: str

    @property
    def supplied_signature(self) -> str:
        return self.sign


class HmacBankCallback(BankCallback):
    """Callback of the HMAC generation, echoing amount and currency."""

    variant: ClassVar[ProtocolVariant] = ProtocolVariant.HMAC256
    signing_order: ClassVar[tuple[str, ...]] = (
        "AMT",
        "CURR",
        "VS",
        "RES",
        "AC",
        "TID",
        "TIMESTAMP",
    )

    amt: str
    curr: str
    tid: str
    timestamp: str
    hmac: str

    @property
    def supplied_signature(self) -> str:
        return self.hmac

    def field_values(self) -> dict[str, str]:
        values = super().field_values()
        values.update(
            {
                "AMT": self.amt,
                "CURR": self.curr,
                "TID": self.tid,
                "TIMESTAMP": self.timestamp,
            }
        )
        return values
