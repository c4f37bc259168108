"""Email notification commands."""

import logging

import typer

from finboard.cli.components import build_notifier, load_settings, open_store
from finboard.notifications.email_sender import build_test_payload

app = typer.Typer(help="Email notification commands")
logger = logging.getLogger(__name__)


@app.command("test")
def send_test_email() -> None:
    """Check the SMTP connection and send a sample balance email."""
    settings = load_settings()
    notifier = build_notifier(settings)
    if notifier is None:
        logger.error("❌ Email is not configured")
        logger.info(
            "💡 Set FINBOARD_EMAIL__HOST, FINBOARD_EMAIL__SENDER and "
            "FINBOARD_EMAIL__RECIPIENT"
        )
        raise typer.Exit(1)

    if not notifier.verify_connection():
        logger.error("❌ Email server connection failed. Check your email settings.")
        raise typer.Exit(1)

    with open_store(settings) as store:
        payload = build_test_payload(store.list_account_balances())

    result = notifier.send(payload)
    if not result.success:
        logger.error(f"❌ Failed to send test email: {result.error}")
        raise typer.Exit(1)

    logger.info("✅ Test email sent successfully!")
