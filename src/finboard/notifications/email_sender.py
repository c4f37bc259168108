"""SMTP email notifications for balance changes.

The notifier renders a short HTML summary (assets, liabilities, net worth and
one row per changed account) with a plain-text alternative and sends it over
SMTP. Delivery failures are reported through :class:`NotificationResult`
rather than raised, so a broken mail server never fails a refresh.
"""

import logging
import smtplib
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal
from email.message import EmailMessage
from html import escape

from finboard.config import EmailConfig
from finboard.exceptions import NotificationError
from finboard.models import (
    AccountBalance,
    BalanceChange,
    NotificationPayload,
    NotificationResult,
)
from finboard.rollup import rollup_current

logger = logging.getLogger(__name__)

# Synthetic change used by the self-test message
TEST_CHANGE_AMOUNT = Decimal("50")
TEST_ACCOUNT_LIMIT = 3


def format_money(amount: Decimal) -> str:
    """Format an amount as dollars, e.g. ``-$1,234.50``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_delta(amount: Decimal) -> str:
    """Format a change with an explicit sign, e.g. ``+$12.00``."""
    sign = "+" if amount >= 0 else "-"
    return f"{sign}${abs(amount):,.2f}"


def render_text(payload: NotificationPayload, today: date | None = None) -> str:
    """Plain-text body of a balance update email."""
    today = today or date.today()
    lines = [
        f"Daily Financial Update for {today.isoformat()}",
        "",
        f"Total Assets:      {format_money(payload.total_assets)}",
        f"Total Liabilities: {format_money(payload.total_liabilities)}",
        f"Net Worth:         {format_money(payload.net_worth)}",
        "",
    ]
    if payload.changes:
        lines.append(f"Balance changes ({format_delta(payload.total_change)} total):")
        for change in payload.changes:
            lines.append(
                f"- {change.account_name} ({change.institution_name}): "
                f"{format_money(change.previous_balance)} -> "
                f"{format_money(change.current_balance)} "
                f"({format_delta(change.delta)})"
            )
    else:
        lines.append("No balance changes.")
    return "\n".join(lines)


def render_html(payload: NotificationPayload, today: date | None = None) -> str:
    """HTML body of a balance update email."""
    today = today or date.today()
    net_worth_color = "#10b981" if payload.net_worth >= 0 else "#ef4444"

    rows = []
    for change in payload.changes:
        delta_color = "#10b981" if change.delta >= 0 else "#ef4444"
        rows.append(
            "<tr>"
            f"<td>{escape(change.account_name)}</td>"
            f"<td>{escape(change.institution_name)}</td>"
            f"<td>{format_money(change.previous_balance)}</td>"
            f"<td>{format_money(change.current_balance)}</td>"
            f'<td style="color: {delta_color}">{format_delta(change.delta)}</td>'
            "</tr>"
        )
    changes_table = (
        '<table style="width: 100%; border-collapse: collapse">'
        "<tr><th>Account</th><th>Institution</th><th>Previous</th>"
        "<th>Current</th><th>Change</th></tr>"
        f"{''.join(rows)}</table>"
        if rows
        else "<p>No balance changes.</p>"
    )

    return f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; background-color: #f5f5f5; padding: 20px">
  <div style="max-width: 600px; margin: 0 auto; background-color: white; padding: 20px">
    <h1>Daily Financial Update</h1>
    <p>Your personal finance summary for {today.isoformat()}</p>
    <p>Total Assets: <strong style="color: #10b981">{format_money(payload.total_assets)}</strong></p>
    <p>Total Liabilities: <strong style="color: #ef4444">{format_money(payload.total_liabilities)}</strong></p>
    <p>Net Worth: <strong style="color: {net_worth_color}">{format_money(payload.net_worth)}</strong></p>
    <h2>Balance Changes ({format_delta(payload.total_change)})</h2>
    {changes_table}
    <p style="color: #6b7280">This email was sent from your Personal Finance Dashboard</p>
  </div>
</body>
</html>
"""


def build_test_payload(balances: Sequence[AccountBalance]) -> NotificationPayload:
    """Build the payload for a self-test email from current balances.

    Up to three accounts are shown with a synthetic +$50 change; the totals
    are the real current rollup.
    """
    rollup = rollup_current((b.account, b.latest) for b in balances)
    changes: list[BalanceChange] = []
    for balance in balances[:TEST_ACCOUNT_LIMIT]:
        current = balance.latest.current if balance.latest else Decimal("0")
        changes.append(
            BalanceChange(
                account_name=balance.account.name,
                institution_name=balance.institution_name or "Test Bank",
                previous_balance=current - TEST_CHANGE_AMOUNT,
                current_balance=current,
                delta=TEST_CHANGE_AMOUNT,
            )
        )

    return NotificationPayload(
        changes=changes,
        total_change=TEST_CHANGE_AMOUNT * TEST_ACCOUNT_LIMIT,
        total_assets=rollup.total_assets,
        total_liabilities=rollup.total_liabilities,
        net_worth=rollup.net_worth,
    )


class EmailNotifier:
    """Sends balance notifications through an SMTP server."""

    def __init__(self, config: EmailConfig):
        self.config = config

    def _connect(self) -> smtplib.SMTP:
        if not self.config.is_configured:
            raise NotificationError(
                "Email is not configured: host, sender and recipient are required"
            )

        server = smtplib.SMTP(
            self.config.host, self.config.port, timeout=self.config.timeout
        )
        try:
            if self.config.use_tls:
                server.starttls()
            if self.config.username:
                server.login(self.config.username, self.config.password)
        except Exception:
            server.close()
            raise
        return server

    def build_message(
        self, payload: NotificationPayload, recipients: Iterable[str] | None = None
    ) -> EmailMessage:
        """Assemble the multipart message for a payload."""
        message = EmailMessage()
        message["Subject"] = self.config.subject
        message["From"] = self.config.sender
        message["To"] = ", ".join(recipients or [self.config.recipient])
        message.set_content(render_text(payload))
        message.add_alternative(render_html(payload), subtype="html")
        return message

    def send(self, payload: NotificationPayload) -> NotificationResult:
        """Send a balance update email.

        Returns:
            NotificationResult: success flag and, on failure, the error text
        """
        try:
            message = self.build_message(payload)
            with self._connect() as server:
                server.send_message(message)
        except (NotificationError, smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending email: {e}")
            return NotificationResult(success=False, error=str(e))

        logger.info(
            f"Email sent successfully to {self.config.recipient} "
            f"({len(payload.changes)} changes)"
        )
        return NotificationResult(success=True)

    def verify_connection(self) -> bool:
        """Check that the SMTP server accepts a connection and login."""
        try:
            with self._connect() as server:
                status, _ = server.noop()
        except (NotificationError, smtplib.SMTPException, OSError) as e:
            logger.error(f"Email server connection failed: {e}")
            return False

        if status != 250:
            logger.error(f"Email server connection failed: NOOP returned {status}")
            return False

        logger.info("Email server connection successful")
        return True
