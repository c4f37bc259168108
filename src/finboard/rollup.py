"""Asset, liability and net-worth rollups over account balances.

Every function here is pure: it reads the balances it is given and returns
new values. Nothing touches the database or the network.

Classification follows the Plaid account type:

- ``depository`` and ``investment`` balances count as assets
- ``credit`` and ``loan`` balances count as liabilities, by absolute value
- anything else is left out of both totals
"""

from collections.abc import Iterable
from datetime import UTC, date, datetime, tzinfo
from decimal import Decimal
from enum import Enum

from .models import (
    ZERO,
    Account,
    AccountCategory,
    BalanceSnapshot,
    DatedRollup,
    Rollup,
)

ASSET_CATEGORIES = frozenset(
    {AccountCategory.DEPOSITORY.value, AccountCategory.INVESTMENT.value}
)
LIABILITY_CATEGORIES = frozenset(
    {AccountCategory.CREDIT.value, AccountCategory.LOAN.value}
)

# Subcategories shown with investments even on non-investment accounts
INVESTMENT_SUBCATEGORIES = frozenset({"401k", "ira", "brokerage"})

GROUP_ASSETS = "Assets"
GROUP_INVESTMENTS = "Investments"
GROUP_LIABILITIES = "Liabilities"


class BalanceGroup(Enum):
    """Side of the balance sheet an account falls on."""

    ASSET = "asset"
    LIABILITY = "liability"


def classify_category(category: str | None) -> BalanceGroup | None:
    """Return the balance group for an account category.

    Args:
        category: Plaid account type, e.g. ``"depository"``

    Returns:
        BalanceGroup | None: The group, or None for unrecognized categories
    """
    if category is None:
        return None
    normalized = category.strip().lower()
    if normalized in ASSET_CATEGORIES:
        return BalanceGroup.ASSET
    if normalized in LIABILITY_CATEGORIES:
        return BalanceGroup.LIABILITY
    return None


def _sum_balances(entries: Iterable[tuple[str | None, Decimal]]) -> Rollup:
    total_assets = ZERO
    total_liabilities = ZERO

    for category, amount in entries:
        group = classify_category(category)
        if group is BalanceGroup.ASSET:
            total_assets += amount
        elif group is BalanceGroup.LIABILITY:
            total_liabilities += abs(amount)

    return Rollup(
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities,
    )


def rollup_current(
    balances: Iterable[tuple[Account, BalanceSnapshot | None]],
) -> Rollup:
    """Roll up each account's latest balance into current totals.

    Args:
        balances: (account, latest snapshot) pairs. An account without a
            snapshot counts as a zero balance.

    Returns:
        Rollup: Total assets, total liabilities and net worth
    """
    return _sum_balances(
        (account.category, snapshot.current if snapshot else ZERO)
        for account, snapshot in balances
    )


def snapshot_date(recorded_at: datetime, tz: tzinfo = UTC) -> date:
    """Calendar day a snapshot belongs to in the given timezone.

    Naive timestamps are taken to be UTC, which is how the store writes them.
    """
    if recorded_at.tzinfo is None:
        recorded_at = recorded_at.replace(tzinfo=UTC)
    return recorded_at.astimezone(tz).date()


def rollup_history(
    snapshots: Iterable[tuple[str, BalanceSnapshot]],
    tz: tzinfo = UTC,
) -> list[DatedRollup]:
    """Roll up a snapshot history into one record per calendar day.

    Every snapshot recorded on a day contributes to that day's totals, so a day
    with several snapshots for one account sums all of them. The figures are
    not end-of-day balances and can differ from ``rollup_current`` for today.

    Args:
        snapshots: (account category, snapshot) pairs in any order
        tz: Timezone whose calendar days define the buckets

    Returns:
        list[DatedRollup]: One rollup per distinct day, oldest first
    """
    buckets: dict[date, list[tuple[str | None, Decimal]]] = {}
    for category, snapshot in snapshots:
        day = snapshot_date(snapshot.recorded_at, tz)
        buckets.setdefault(day, []).append((category, snapshot.current))

    history: list[DatedRollup] = []
    for day in sorted(buckets):
        totals = _sum_balances(buckets[day])
        history.append(DatedRollup(date=day, **totals.model_dump()))
    return history


def financial_group(category: str | None, subcategory: str | None) -> str:
    """Display group used by the dashboard's breakdown chart."""
    normalized = (category or "").strip().lower()
    if (
        normalized == AccountCategory.INVESTMENT.value
        or (subcategory or "").strip().lower() in INVESTMENT_SUBCATEGORIES
    ):
        return GROUP_INVESTMENTS
    if normalized in LIABILITY_CATEGORIES:
        return GROUP_LIABILITIES
    return GROUP_ASSETS


def rollup_groups(
    balances: Iterable[tuple[Account, BalanceSnapshot | None]],
) -> dict[str, Decimal]:
    """Sum latest balances by display group.

    Unlike :func:`rollup_current`, every account lands in some group:
    unrecognized categories are shown with assets. Liabilities are summed
    by absolute value. Groups with no accounts are omitted.

    Returns:
        dict[str, Decimal]: Totals keyed by group name, in display order
    """
    totals: dict[str, Decimal] = {}
    for account, snapshot in balances:
        group = financial_group(account.category, account.subcategory)
        amount = snapshot.current if snapshot else ZERO
        if group == GROUP_LIABILITIES:
            amount = abs(amount)
        totals[group] = totals.get(group, ZERO) + amount

    order = (GROUP_ASSETS, GROUP_INVESTMENTS, GROUP_LIABILITIES)
    return {group: totals[group] for group in order if group in totals}
