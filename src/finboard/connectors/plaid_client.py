"""Plaid API client using straightforward SDK calls.

This module wraps the handful of Plaid endpoints Finboard needs: creating
Link tokens, exchanging public tokens, looking up institutions, and fetching
accounts with balances. Every request carries the configured timeout, and
every SDK or transport failure is re-raised as :class:`ProviderError`.
"""

import json
import logging
from collections.abc import Callable
from typing import Any

import urllib3.exceptions
from plaid.api import plaid_api
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.exceptions import ApiException, OpenApiException
from plaid.model.accounts_balance_get_request import AccountsBalanceGetRequest
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.country_code import CountryCode
from plaid.model.institutions_get_by_id_request import InstitutionsGetByIdRequest
from plaid.model.institutions_get_by_id_request_options import (
    InstitutionsGetByIdRequestOptions,
)
from plaid.model.item_get_request import ItemGetRequest
from plaid.model.item_public_token_exchange_request import (
    ItemPublicTokenExchangeRequest,
)
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products
from pydantic import ValidationError

from finboard.config import PlaidConfig
from finboard.exceptions import ProviderError

from .plaid_schemas import AccountSchema, Institution, PlaidEnvironment

logger = logging.getLogger(__name__)


def _error_details(exc: ApiException) -> tuple[str | None, str | None]:
    """Pull Plaid's error_code and error_message out of an ApiException body."""
    body = getattr(exc, "body", None)
    if isinstance(body, (str, bytes)):
        try:
            details = json.loads(body)
        except ValueError:
            return None, None
        if isinstance(details, dict):
            return details.get("error_code"), details.get("error_message")
    return None, None


class PlaidClient:
    """Thin client over the Plaid SDK for linking and balance retrieval."""

    def __init__(self, config: PlaidConfig):
        """Initialize the Plaid client.

        Args:
            config: Plaid credentials and request settings

        Raises:
            ValueError: If the client ID or secret is missing
        """
        if not config.client_id or not config.secret:
            raise ValueError("Plaid client_id and secret are required")

        self.config = config

        configuration = Configuration(
            host=PlaidEnvironment(config.environment).host,
            api_key={
                "clientId": config.client_id,
                "secret": config.secret,
            },
        )
        api_client = ApiClient(configuration)
        # Type as Any to avoid pyright partial-unknowns from the SDK stubs
        self.client: Any = plaid_api.PlaidApi(api_client)

        logger.info(f"Initialized Plaid client for {config.environment} environment")

    def _call(self, operation: str, method: Callable[..., Any], request: Any) -> Any:
        """Invoke an SDK method with the configured timeout.

        Raises:
            ProviderError: If the request fails for any API or transport reason
        """
        try:
            return method(request, _request_timeout=self.config.request_timeout)
        except ApiException as e:
            error_code, error_message = _error_details(e)
            message = error_message or e.reason or str(e)
            logger.debug(f"Plaid {operation} failed with status {e.status}")
            raise ProviderError(
                f"Plaid {operation} failed: {message}", error_code=error_code
            ) from e
        except (OpenApiException, urllib3.exceptions.HTTPError) as e:
            raise ProviderError(f"Plaid {operation} failed: {e}") from e

    def create_link_token(self, client_user_id: str) -> str:
        """Create a Link token for the hosted bank-linking widget.

        Args:
            client_user_id: Stable identifier of the dashboard user

        Returns:
            str: The link token to hand to Plaid Link
        """
        request = LinkTokenCreateRequest(
            user=LinkTokenCreateRequestUser(client_user_id=client_user_id),
            client_name=self.config.client_name,
            products=[Products(p) for p in self.config.products],
            country_codes=[CountryCode(c) for c in self.config.country_codes],
            language="en",
        )
        response = self._call(
            "link_token_create", self.client.link_token_create, request
        )
        link_token = getattr(response, "link_token", None)
        if not isinstance(link_token, str) or not link_token:
            raise ProviderError("Plaid link_token_create returned no link token")
        return link_token

    def exchange_public_token(self, public_token: str) -> tuple[str, str]:
        """Exchange a Link public token for a permanent access token.

        Returns:
            tuple: (access_token, item_id)
        """
        request = ItemPublicTokenExchangeRequest(public_token=public_token)
        response = self._call(
            "item_public_token_exchange",
            self.client.item_public_token_exchange,
            request,
        )
        access_token = getattr(response, "access_token", None)
        item_id = getattr(response, "item_id", None)
        if not isinstance(access_token, str) or not isinstance(item_id, str):
            raise ProviderError("Plaid token exchange returned no access token")
        return access_token, item_id

    def get_item_institution_id(self, access_token: str) -> str | None:
        """Institution the item behind an access token belongs to."""
        response = self._call(
            "item_get", self.client.item_get, ItemGetRequest(access_token=access_token)
        )
        item = getattr(response, "item", None)
        return getattr(item, "institution_id", None)

    def get_institution(self, institution_id: str) -> Institution:
        """Look up an institution's display name and logo."""
        request = InstitutionsGetByIdRequest(
            institution_id=institution_id,
            country_codes=[CountryCode(c) for c in self.config.country_codes],
            options=InstitutionsGetByIdRequestOptions(include_optional_metadata=True),
        )
        response = self._call(
            "institutions_get_by_id", self.client.institutions_get_by_id, request
        )
        institution = getattr(response, "institution", None)
        return Institution(
            institution_id=institution_id,
            name=getattr(institution, "name", None) or institution_id,
            logo=getattr(institution, "logo", None),
        )

    def get_accounts(
        self, access_token: str, refresh_balances: bool = True
    ) -> list[AccountSchema]:
        """Fetch an item's accounts with their balances.

        Args:
            access_token: Plaid access token for the item
            refresh_balances: Ask Plaid for real-time balances
                (``/accounts/balance/get``) instead of cached ones

        Returns:
            list[AccountSchema]: Validated accounts
        """
        if refresh_balances:
            response = self._call(
                "accounts_balance_get",
                self.client.accounts_balance_get,
                AccountsBalanceGetRequest(access_token=access_token),
            )
        else:
            response = self._call(
                "accounts_get",
                self.client.accounts_get,
                AccountsGetRequest(access_token=access_token),
            )

        # Pass Plaid SDK objects directly; schema validators handle coercion
        try:
            return [
                AccountSchema.model_validate(account)
                for account in getattr(response, "accounts", [])
            ]
        except ValidationError as e:
            raise ProviderError(f"Plaid returned malformed account data: {e}") from e
