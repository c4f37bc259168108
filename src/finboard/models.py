"""Pydantic models for Finboard's stored data and computed results.

Stored entities (link items, accounts, balance snapshots) mirror the DuckDB
tables. Computed results (rollups, balance changes, refresh summaries) are
serialized to the dashboard with camelCase keys and money as JSON numbers.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Decimal in Python, plain number in JSON
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

ZERO = Decimal("0")


class AccountCategory(Enum):
    """Plaid account type values Finboard knows about."""

    DEPOSITORY = "depository"
    CREDIT = "credit"
    LOAN = "loan"
    INVESTMENT = "investment"
    OTHER = "other"


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


# Stored entities


class LinkItem(BaseSchema):
    """One authorized connection to a financial institution."""

    id: str
    provider_item_id: str
    access_token: str = Field(exclude=True, repr=False)
    institution_id: str | None = None
    institution_name: str | None = None
    institution_logo: str | None = None
    created_at: datetime


class Account(BaseSchema):
    """A bank account belonging to a link item."""

    id: str
    provider_account_id: str
    item_id: str
    name: str
    category: str
    subcategory: str | None = None
    mask: str | None = None
    created_at: datetime


class BalanceSnapshot(BaseSchema):
    """A timestamped recording of an account's balance."""

    id: str
    account_id: str
    current: Money
    available: Money | None = None
    limit: Money | None = None
    recorded_at: datetime


class AccountBalance(BaseSchema):
    """An account with its institution and most recent balance."""

    account: Account
    institution_name: str | None = None
    institution_logo: str | None = None
    latest: BalanceSnapshot | None = None


# Computed results


class Rollup(BaseSchema):
    """Balances grouped into assets, liabilities and net worth."""

    total_assets: Money = ZERO
    total_liabilities: Money = ZERO
    net_worth: Money = ZERO


class DatedRollup(Rollup):
    """A rollup of the snapshots recorded on one calendar day."""

    date: date


class BalanceChange(BaseSchema):
    """A material change in one account's balance."""

    account_name: str
    institution_name: str
    previous_balance: Money
    current_balance: Money
    delta: Money


class NotificationPayload(BaseSchema):
    """Everything a notifier needs to describe a refresh."""

    changes: list[BalanceChange] = Field(default_factory=list)
    total_change: Money = ZERO
    total_assets: Money = ZERO
    total_liabilities: Money = ZERO
    net_worth: Money = ZERO


class NotificationResult(BaseSchema):
    """Outcome of a notification attempt."""

    success: bool
    error: str | None = None


class RefreshResult(BaseSchema):
    """Summary of one balance refresh cycle."""

    success: bool = True
    changes: list[BalanceChange] = Field(default_factory=list)
    total_change: Money = ZERO
    email_sent: bool = False
    summary: Rollup = Field(default_factory=Rollup)
    failed_items: list[str] = Field(default_factory=list)
    message: str = ""
