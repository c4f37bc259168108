"""Completing a new bank link.

After the user finishes the hosted Plaid Link widget, the dashboard posts the
resulting public token here. We exchange it for an access token, look up the
institution, and persist the link item, its accounts, and an opening balance
snapshot for each account.
"""

import logging

from .connectors.plaid_client import PlaidClient
from .models import ZERO, LinkItem
from .storage.store import BalanceStore

logger = logging.getLogger(__name__)


class AccountLinker:
    """Creates link tokens and records newly linked items."""

    def __init__(self, store: BalanceStore, provider: PlaidClient):
        self.store = store
        self.provider = provider

    def create_link_token(self, client_user_id: str = "finboard-user") -> str:
        """Create a Plaid Link token for the dashboard user."""
        return self.provider.create_link_token(client_user_id)

    def link_item(self, public_token: str) -> LinkItem:
        """Exchange a public token and persist the new item with its accounts.

        Args:
            public_token: Token returned by Plaid Link on success

        Returns:
            LinkItem: The stored link item

        Raises:
            ProviderError: If any Plaid call fails
        """
        access_token, provider_item_id = self.provider.exchange_public_token(
            public_token
        )

        institution_id = self.provider.get_item_institution_id(access_token)
        institution_name: str | None = None
        institution_logo: str | None = None
        if institution_id:
            institution = self.provider.get_institution(institution_id)
            institution_name = institution.name
            institution_logo = institution.logo

        accounts = self.provider.get_accounts(access_token, refresh_balances=False)

        item = self.store.create_link_item(
            provider_item_id=provider_item_id,
            access_token=access_token,
            institution_id=institution_id,
            institution_name=institution_name,
            institution_logo=institution_logo,
        )

        for provider_account in accounts:
            account = self.store.create_account(
                item_id=item.id,
                provider_account_id=provider_account.account_id,
                name=provider_account.name,
                category=provider_account.type,
                subcategory=provider_account.subtype,
                mask=provider_account.mask,
            )
            self.store.insert_snapshot(
                account.id,
                current=provider_account.balances.current or ZERO,
                available=provider_account.balances.available,
                limit=provider_account.balances.limit,
            )

        logger.info(
            f"✅ Linked {institution_name or provider_item_id} "
            f"with {len(accounts)} accounts"
        )
        return item
