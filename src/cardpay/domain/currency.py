from __future__ import annotations

from enum import IntEnum


class Currency(IntEnum):
    """Currencies accepted by the gateway, valued by their ISO 4217 numeric code."""

    EUR = 978
    CZK = 203
    USD = 840
    GBP = 826
    HUF = 348
    PLN = 985
    CHF = 756
    DKK = 208

    @property
    def code(self) -> str:
        """Numeric code as sent in the CURR field."""
        return str(int(self))
