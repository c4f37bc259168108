"""Connectors for external bank-data aggregation services."""

from .plaid_client import PlaidClient
from .plaid_schemas import AccountSchema, BalanceSchema, Institution

__all__ = ["AccountSchema", "BalanceSchema", "Institution", "PlaidClient"]
