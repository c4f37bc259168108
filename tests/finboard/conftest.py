"""Shared pytest fixtures for finboard tests.

Provides an in-memory balance store, factories for domain objects, and
settings-cache cleanup so tests never see each other's configuration.
"""

from collections.abc import Callable, Generator
from datetime import datetime
from decimal import Decimal

import pytest

from finboard.config import clear_settings_cache
from finboard.models import Account, BalanceSnapshot
from finboard.storage.store import BalanceStore


@pytest.fixture(autouse=True)
def clean_settings_state() -> Generator[None, None, None]:
    """Clear the settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def store() -> Generator[BalanceStore, None, None]:
    """An empty in-memory DuckDB store."""
    with BalanceStore(":memory:") as s:
        yield s


@pytest.fixture
def make_account() -> Callable[..., Account]:
    """Factory for Account objects that are never persisted."""
    counter = iter(range(1, 10_000))

    def _make(
        category: str = "depository",
        name: str | None = None,
        subcategory: str | None = None,
    ) -> Account:
        n = next(counter)
        return Account(
            id=f"acc-{n}",
            provider_account_id=f"plaid-acc-{n}",
            item_id="item-1",
            name=name or f"Account {n}",
            category=category,
            subcategory=subcategory,
            created_at=datetime(2025, 1, 1),
        )

    return _make


@pytest.fixture
def make_snapshot() -> Callable[..., BalanceSnapshot]:
    """Factory for BalanceSnapshot objects that are never persisted."""
    counter = iter(range(1, 10_000))

    def _make(
        current: str | Decimal,
        account_id: str = "acc-1",
        recorded_at: datetime | None = None,
    ) -> BalanceSnapshot:
        return BalanceSnapshot(
            id=f"snap-{next(counter)}",
            account_id=account_id,
            current=Decimal(current),
            recorded_at=recorded_at or datetime(2025, 6, 1, 12, 0),
        )

    return _make


@pytest.fixture
def linked_store(store: BalanceStore) -> BalanceStore:
    """A store with one item holding a checking account and a credit card.

    - Checking (depository): $1,000.00
    - Visa (credit): -$200.00
    """
    item = store.create_link_item(
        provider_item_id="plaid-item-1",
        access_token="access-sandbox-1",
        institution_id="ins_1",
        institution_name="First Platypus Bank",
    )
    checking = store.create_account(
        item.id, "plaid-checking", "Checking", "depository", "checking", "0000"
    )
    visa = store.create_account(
        item.id, "plaid-visa", "Visa", "credit", "credit card", "3333"
    )
    store.insert_snapshot(checking.id, Decimal("1000.00"))
    store.insert_snapshot(visa.id, Decimal("-200.00"))
    return store
