"""Persistent storage for link items, accounts and balance snapshots."""

from .store import ACCOUNTS, BALANCE_SNAPSHOTS, LINK_ITEMS, BalanceStore, TableRef

__all__ = ["ACCOUNTS", "BALANCE_SNAPSHOTS", "LINK_ITEMS", "BalanceStore", "TableRef"]
