"""Pydantic schemas for the Plaid API responses Finboard consumes.

Plaid SDK model objects are validated directly into these schemas; the
validators coerce SDK enums into plain strings and float balances into
Decimal without going through binary rounding.
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PlaidEnvironment(Enum):
    """Plaid API environment options."""

    SANDBOX = "sandbox"
    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @property
    def host(self) -> str:
        """Base URL of the Plaid API for this environment."""
        return f"https://{self.value}.plaid.com"


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        extra="ignore",
        use_enum_values=True,
        str_strip_whitespace=True,
        from_attributes=True,
        populate_by_name=True,
    )


def _coerce_enum(v: Any) -> Any:
    if v is None:
        return None
    if isinstance(v, Enum):
        return v.value
    # Plaid SDK string enums keep their raw value on .value
    value = getattr(v, "value", None)
    if isinstance(value, str):
        return value
    return str(v)


class BalanceSchema(BaseSchema):
    """Schema for account balance information."""

    available: Decimal | None = Field(None, description="Available balance")
    current: Decimal | None = Field(None, description="Current balance")
    limit: Decimal | None = Field(None, description="Credit limit or overdraft limit")
    iso_currency_code: str | None = Field(None, max_length=3)

    @field_validator("available", "current", "limit", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        """Convert floats through their repr so 1000.005 stays 1000.005."""
        if isinstance(v, float):
            return Decimal(repr(v))
        return v


class AccountSchema(BaseSchema):
    """Schema for Plaid account data."""

    account_id: str = Field(..., description="Plaid account ID")
    balances: BalanceSchema
    mask: str | None = Field(None, max_length=4)
    name: str = Field(..., description="Account name")
    official_name: str | None = None
    subtype: str | None = None
    type: str

    @field_validator("type", "subtype", mode="before")
    @classmethod
    def coerce_account_enums(cls, v: Any) -> Any:
        """Accept Plaid SDK enum or string and convert to string."""
        return _coerce_enum(v)


class Institution(BaseSchema):
    """Display metadata for a financial institution."""

    institution_id: str
    name: str
    logo: str | None = None
