"""Finboard: personal finance dashboard backend.

This package links bank accounts through Plaid, keeps an append-only history
of account balances in a local DuckDB database, and provides:
- Asset, liability and net-worth rollups (current and by day)
- Balance refresh with material-change detection
- Email notifications for balance changes
- An HTTP API for the dashboard and a CLI for operators
"""

__version__ = "0.1.0"
