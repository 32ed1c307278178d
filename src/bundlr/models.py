"""
Relay response models using Pydantic for validation.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Below CPython's default int/str conversion limit (4300 digits)
INT_PARSE_CHUNK = 4000


def parse_decimal(digits: str) -> int:
    """Exact int from a string of ASCII digits of any length."""
    value = 0
    for start in range(0, len(digits), INT_PARSE_CHUNK):
        chunk = digits[start : start + INT_PARSE_CHUNK]
        value = value * 10 ** len(chunk) + int(chunk)
    return value


class PubInfo(BaseModel):
    """Relay metadata from ``GET /info``. Immutable once fetched."""

    model_config = ConfigDict(frozen=True)

    version: str
    gateway: str
    addresses: dict[str, str] = Field(default_factory=dict)

    def deposit_address(self, currency: str) -> str | None:
        return self.addresses.get(currency.lower())


class BalanceResponse(BaseModel):
    # Decimal string so arbitrarily large balances survive JSON
    balance: str = Field(pattern=r"^[0-9]+$")

    def as_int(self) -> int:
        return parse_decimal(self.balance)


class FundBody(BaseModel):
    tx_id: str
