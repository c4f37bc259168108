"""Balance refresh with material-change detection.

A refresh walks every linked item in turn, fetches fresh balances from the
provider and compares each account against its latest stored snapshot. Only
changes larger than the threshold are written (one new snapshot per changed
account) and reported. When anything changed, a notification is sent.

Failure handling:
- Any failure fetching one item (normally a ProviderError) is logged and
  that item is skipped.
- A notification failure is logged and reported as ``email_sent=False``;
  snapshots already written stay written.
- Store errors are not caught and fail the refresh.
"""

import logging
from decimal import Decimal

from .connectors.plaid_client import PlaidClient
from .connectors.plaid_schemas import AccountSchema
from .models import (
    ZERO,
    Account,
    BalanceChange,
    LinkItem,
    NotificationPayload,
    RefreshResult,
    Rollup,
)
from .notifications.email_sender import EmailNotifier
from .rollup import rollup_current
from .storage.store import BalanceStore

logger = logging.getLogger(__name__)

DEFAULT_CHANGE_THRESHOLD = Decimal("0.01")
UNKNOWN_INSTITUTION = "Unknown Bank"


def is_material_change(
    delta: Decimal, threshold: Decimal = DEFAULT_CHANGE_THRESHOLD
) -> bool:
    """Whether a balance delta is large enough to record.

    The comparison is strict: a delta exactly equal to the threshold is not
    a change.
    """
    return abs(delta) > threshold


def build_message(
    changes: list[BalanceChange], total_change: Decimal, email_sent: bool
) -> str:
    """One-line human summary of a refresh."""
    suffix = ". Email notification sent." if email_sent else "."
    return (
        f"Refreshed balances. Found {len(changes)} changes "
        f"totaling ${total_change:.2f}{suffix}"
    )


class BalanceRefresher:
    """Runs refresh cycles against a store, a provider and a notifier."""

    def __init__(
        self,
        store: BalanceStore,
        provider: PlaidClient,
        notifier: EmailNotifier | None = None,
        change_threshold: Decimal = DEFAULT_CHANGE_THRESHOLD,
    ):
        self.store = store
        self.provider = provider
        self.notifier = notifier
        self.change_threshold = change_threshold

    def refresh_all(self) -> RefreshResult:
        """Refresh every linked item and notify about material changes.

        Returns:
            RefreshResult: The changes found, their total, the post-refresh
                rollup, whether the email went out, and items that failed
        """
        items = self.store.list_link_items()
        logger.info(f"Refreshing balances for {len(items)} linked items")

        changes: list[BalanceChange] = []
        failed_items: list[str] = []

        for item in items:
            try:
                fetched = self.provider.get_accounts(item.access_token)
            except Exception as e:
                logger.error(f"❌ Error refreshing balances for item {item.id}: {e}")
                failed_items.append(item.id)
                continue

            changes.extend(self._apply_item(item, fetched))

        total_change = sum((c.delta for c in changes), ZERO)
        summary = rollup_current(
            (b.account, b.latest) for b in self.store.list_account_balances()
        )

        email_sent = False
        if changes:
            email_sent = self._notify(changes, total_change, summary)

        message = build_message(changes, total_change, email_sent)
        logger.info(message)

        return RefreshResult(
            success=True,
            changes=changes,
            total_change=total_change,
            email_sent=email_sent,
            summary=summary,
            failed_items=failed_items,
            message=message,
        )

    def _apply_item(
        self, item: LinkItem, fetched: list[AccountSchema]
    ) -> list[BalanceChange]:
        """Compare one item's fetched balances with the store and record changes."""
        accounts: dict[str, Account] = {
            a.provider_account_id: a for a in self.store.list_accounts(item.id)
        }
        institution_name = item.institution_name or UNKNOWN_INSTITUTION

        changes: list[BalanceChange] = []
        for provider_account in fetched:
            account = accounts.get(provider_account.account_id)
            if account is None:
                logger.debug(
                    f"Skipping unknown account {provider_account.account_id} "
                    f"on item {item.id}"
                )
                continue

            previous = self.store.latest_snapshot(account.id)
            previous_balance = previous.current if previous else ZERO
            current_balance = provider_account.balances.current or ZERO
            delta = current_balance - previous_balance

            if not is_material_change(delta, self.change_threshold):
                continue

            self.store.insert_snapshot(
                account.id,
                current=current_balance,
                available=provider_account.balances.available,
                limit=provider_account.balances.limit,
            )
            changes.append(
                BalanceChange(
                    account_name=account.name,
                    institution_name=institution_name,
                    previous_balance=previous_balance,
                    current_balance=current_balance,
                    delta=delta,
                )
            )
            logger.debug(f"{account.name}: {previous_balance} -> {current_balance}")

        return changes

    def _notify(
        self, changes: list[BalanceChange], total_change: Decimal, summary: Rollup
    ) -> bool:
        if self.notifier is None:
            logger.info("No notifier configured; skipping email")
            return False

        payload = NotificationPayload(
            changes=changes,
            total_change=total_change,
            total_assets=summary.total_assets,
            total_liabilities=summary.total_liabilities,
            net_worth=summary.net_worth,
        )
        try:
            result = self.notifier.send(payload)
        except Exception as e:
            logger.error(f"Failed to send email notification: {e}")
            return False

        if not result.success:
            logger.error(f"Failed to send email notification: {result.error}")
            return False
        return True
