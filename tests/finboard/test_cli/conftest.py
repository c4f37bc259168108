"""Fixtures for CLI command tests."""

import os
from decimal import Decimal
from pathlib import Path

import pytest
from typer.testing import CliRunner

from finboard.storage.store import BalanceStore


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner for testing."""
    return CliRunner()


@pytest.fixture
def db_path(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point the settings at a throwaway database with sandbox credentials."""
    for name in list(os.environ):
        if name.startswith(("FINBOARD_", "PLAID_")):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)

    path = tmp_path / "data" / "finboard.duckdb"
    monkeypatch.setenv("FINBOARD_DATABASE__PATH", str(path))
    monkeypatch.setenv("PLAID_CLIENT_ID", "test_client_id")
    monkeypatch.setenv("PLAID_SECRET", "test_secret")
    return path


@pytest.fixture
def seeded_db(db_path: Path) -> Path:
    """Database file holding one bank with a checking account and a card."""
    with BalanceStore(db_path) as store:
        item = store.create_link_item(
            "plaid-item-1", "access-sandbox-1", institution_name="First Platypus Bank"
        )
        checking = store.create_account(
            item.id, "plaid-checking", "Checking", "depository", "checking", "0000"
        )
        visa = store.create_account(item.id, "plaid-visa", "Visa", "credit")
        store.insert_snapshot(checking.id, Decimal("1000.00"))
        store.insert_snapshot(visa.id, Decimal("-200.00"))
    return db_path
