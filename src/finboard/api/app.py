"""HTTP API consumed by the dashboard frontend.

The application is built by :func:`create_app` from explicitly constructed
components (settings, store, Plaid client, notifier). The process entry point
owns those components and their lifecycle; routes reach them through
``app.state``.

Every route returns JSON. Failures are logged with their cause and answered
with HTTP 500 and a generic ``{"error": ...}`` body.
"""

import logging
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from finboard import __version__
from finboard.config import FinboardSettings
from finboard.connectors.plaid_client import PlaidClient
from finboard.linking import AccountLinker
from finboard.models import (
    AccountBalance,
    BaseSchema,
    DatedRollup,
    Money,
    RefreshResult,
    Rollup,
)
from finboard.notifications.email_sender import EmailNotifier, build_test_payload
from finboard.refresh import BalanceRefresher
from finboard.rollup import rollup_current, rollup_groups, rollup_history
from finboard.storage.store import BalanceStore

logger = logging.getLogger(__name__)


class ExchangeTokenRequest(BaseModel):
    """Body of POST /plaid/exchange-token."""

    public_token: str


class SummaryResponse(Rollup):
    """Current rollup plus the per-group breakdown."""

    groups: dict[str, Money]


class EmailTestResponse(BaseSchema):
    """Outcome of the notification self-test."""

    success: bool
    message: str


def _error(message: str, details: str | None = None) -> JSONResponse:
    content: dict[str, str] = {"error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=500, content=content)


def get_app_settings(request: Request) -> FinboardSettings:
    return request.app.state.settings


def get_store(request: Request) -> BalanceStore:
    return request.app.state.store


def get_provider(request: Request) -> PlaidClient:
    return request.app.state.provider


def get_notifier(request: Request) -> EmailNotifier | None:
    return request.app.state.notifier


SettingsDep = Annotated[FinboardSettings, Depends(get_app_settings)]
StoreDep = Annotated[BalanceStore, Depends(get_store)]
ProviderDep = Annotated[PlaidClient, Depends(get_provider)]
NotifierDep = Annotated[EmailNotifier | None, Depends(get_notifier)]


def create_app(
    settings: FinboardSettings,
    store: BalanceStore,
    provider: PlaidClient,
    notifier: EmailNotifier | None = None,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Build the FastAPI application around already-constructed components.

    Args:
        settings: Validated application settings
        store: Open balance store; the caller closes it
        provider: Plaid client
        notifier: Email notifier, or None to disable notifications
        cors_origins: Origins allowed to call the API from a browser

    Returns:
        FastAPI: The configured application
    """
    app = FastAPI(title="Finboard", version=__version__)
    app.state.settings = settings
    app.state.store = store
    app.state.provider = provider
    app.state.notifier = notifier

    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
        return _error("Internal server error")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/accounts", response_model=list[AccountBalance])
    def list_accounts(store: StoreDep):
        """Accounts with their latest balance and institution metadata."""
        try:
            return store.list_account_balances()
        except Exception as e:
            logger.error(f"Error fetching accounts: {e}", exc_info=e)
            return _error("Failed to fetch accounts")

    @app.get("/balance-history", response_model=list[DatedRollup])
    def balance_history(store: StoreDep, settings: SettingsDep):
        """Daily asset, liability and net-worth totals, oldest first."""
        try:
            return rollup_history(store.snapshot_history(), settings.rollup.tzinfo)
        except Exception as e:
            logger.error(f"Error fetching balance history: {e}", exc_info=e)
            return _error("Failed to fetch balance history")

    @app.get("/summary", response_model=SummaryResponse)
    def summary(store: StoreDep):
        """Current totals and the assets/investments/liabilities breakdown."""
        try:
            pairs = [(b.account, b.latest) for b in store.list_account_balances()]
            rollup = rollup_current(pairs)
            return SummaryResponse(groups=rollup_groups(pairs), **rollup.model_dump())
        except Exception as e:
            logger.error(f"Error computing summary: {e}", exc_info=e)
            return _error("Failed to compute summary")

    @app.post("/plaid/create-link-token")
    def create_link_token(store: StoreDep, provider: ProviderDep):
        try:
            link_token = AccountLinker(store, provider).create_link_token()
        except Exception as e:
            logger.error(f"Error creating link token: {e}", exc_info=e)
            return _error("Failed to create link token")
        return {"link_token": link_token}

    @app.post("/plaid/exchange-token")
    def exchange_token(
        body: ExchangeTokenRequest, store: StoreDep, provider: ProviderDep
    ):
        """Complete a bank link from the public token Plaid Link returned."""
        try:
            AccountLinker(store, provider).link_item(body.public_token)
        except Exception as e:
            logger.error(f"Error exchanging token: {e}", exc_info=e)
            return _error("Failed to exchange token")
        return {"success": True}

    @app.post("/refresh-balances", response_model=RefreshResult)
    def refresh_balances(
        store: StoreDep,
        provider: ProviderDep,
        notifier: NotifierDep,
        settings: SettingsDep,
    ):
        """Fetch fresh balances for every item and report material changes."""
        refresher = BalanceRefresher(
            store,
            provider,
            notifier,
            change_threshold=settings.rollup.change_threshold,
        )
        try:
            return refresher.refresh_all()
        except Exception as e:
            logger.error(f"Error refreshing balances: {e}", exc_info=e)
            return _error("Failed to refresh balances")

    @app.post("/test-email", response_model=EmailTestResponse)
    def test_email(store: StoreDep, notifier: NotifierDep):
        """Verify the mail server and send a sample notification."""
        if notifier is None:
            return _error("Email notifications are not configured")

        try:
            if not notifier.verify_connection():
                return _error(
                    "Email server connection failed. Check your email settings."
                )

            payload = build_test_payload(store.list_account_balances())
            result = notifier.send(payload)
        except Exception as e:
            logger.error(f"Error sending test email: {e}", exc_info=e)
            return _error("Failed to send test email")

        if not result.success:
            return _error("Failed to send test email", details=result.error)
        return EmailTestResponse(success=True, message="Test email sent successfully!")

    return app
