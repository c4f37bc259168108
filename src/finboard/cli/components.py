"""Construction of the long-lived components used by CLI commands.

Commands build what they need from the loaded settings and own the result:
the store is opened as a context manager and closed when the command ends.
"""

import logging

import typer

from finboard.config import FinboardSettings, get_settings
from finboard.connectors.plaid_client import PlaidClient
from finboard.notifications.email_sender import EmailNotifier
from finboard.storage.store import BalanceStore

logger = logging.getLogger(__name__)


def load_settings(require_plaid: bool = False) -> FinboardSettings:
    """Load settings, turning configuration errors into a CLI exit.

    Args:
        require_plaid: Also require Plaid credentials to be present
    """
    try:
        settings = get_settings()
        if require_plaid:
            settings.validate_required_credentials()
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e
    return settings


def open_store(settings: FinboardSettings) -> BalanceStore:
    return BalanceStore(settings.database.path)


def build_plaid_client(settings: FinboardSettings) -> PlaidClient:
    return PlaidClient(settings.plaid)


def build_notifier(settings: FinboardSettings) -> EmailNotifier | None:
    """Email notifier, or None when SMTP settings are incomplete."""
    if not settings.email.is_configured:
        logger.debug("Email settings incomplete; notifications disabled")
        return None
    return EmailNotifier(settings.email)
