"""Balance commands: refresh, list accounts, and show history."""

import logging
from pathlib import Path

import polars as pl
import typer

from finboard.cli.components import (
    build_notifier,
    build_plaid_client,
    load_settings,
    open_store,
)
from finboard.models import DatedRollup
from finboard.notifications.email_sender import format_delta, format_money
from finboard.refresh import BalanceRefresher
from finboard.rollup import rollup_current, rollup_history

app = typer.Typer(help="Refresh and inspect account balances")
logger = logging.getLogger(__name__)


def history_frame(history: list[DatedRollup]) -> pl.DataFrame:
    """Tabulate a rollup history for export."""
    return pl.DataFrame(
        {
            "date": [r.date for r in history],
            "total_assets": [float(r.total_assets) for r in history],
            "total_liabilities": [float(r.total_liabilities) for r in history],
            "net_worth": [float(r.net_worth) for r in history],
        },
        schema={
            "date": pl.Date,
            "total_assets": pl.Float64,
            "total_liabilities": pl.Float64,
            "net_worth": pl.Float64,
        },
    )


@app.command("refresh")
def refresh(
    no_email: bool = typer.Option(
        False, "--no-email", help="Record changes without sending an email"
    ),
) -> None:
    """Fetch fresh balances from Plaid and record material changes.

    Sends the daily balance email when any account changed, unless
    --no-email is given or email settings are incomplete.
    """
    settings = load_settings(require_plaid=True)

    with open_store(settings) as store:
        refresher = BalanceRefresher(
            store,
            build_plaid_client(settings),
            None if no_email else build_notifier(settings),
            change_threshold=settings.rollup.change_threshold,
        )
        result = refresher.refresh_all()

    for change in result.changes:
        typer.echo(
            f"{change.account_name} ({change.institution_name}): "
            f"{format_money(change.previous_balance)} -> "
            f"{format_money(change.current_balance)} ({format_delta(change.delta)})"
        )
    typer.echo(result.message)

    if result.failed_items:
        failed = len(result.failed_items)
        logger.warning(f"⚠️  {failed} items could not be refreshed")


@app.command("accounts")
def list_accounts() -> None:
    """List linked accounts with their latest balance and current totals."""
    settings = load_settings()

    with open_store(settings) as store:
        balances = store.list_account_balances()

    if not balances:
        logger.info("No linked accounts yet - link a bank from the dashboard first")
        return

    for balance in balances:
        account = balance.account
        mask = f" ****{account.mask}" if account.mask else ""
        current = format_money(balance.latest.current) if balance.latest else "n/a"
        typer.echo(
            f"{balance.institution_name or 'Unknown Bank'} | {account.name}{mask} "
            f"| {account.category} | {current}"
        )

    rollup = rollup_current((b.account, b.latest) for b in balances)
    typer.echo(
        f"Assets {format_money(rollup.total_assets)} | "
        f"Liabilities {format_money(rollup.total_liabilities)} | "
        f"Net worth {format_money(rollup.net_worth)}"
    )


@app.command("history")
def history(
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the history to a .csv or .parquet file instead of printing",
    ),
) -> None:
    """Show daily asset, liability and net-worth totals."""
    settings = load_settings()

    with open_store(settings) as store:
        records = rollup_history(store.snapshot_history(), settings.rollup.tzinfo)

    if output is None:
        for record in records:
            typer.echo(
                f"{record.date.isoformat()}  "
                f"assets {format_money(record.total_assets)}  "
                f"liabilities {format_money(record.total_liabilities)}  "
                f"net worth {format_money(record.net_worth)}"
            )
        return

    df = history_frame(records)
    suffix = output.suffix.lower()
    if suffix == ".csv":
        df.write_csv(output)
    elif suffix == ".parquet":
        df.write_parquet(output)
    else:
        logger.error(f"❌ Unsupported output format: {output.suffix}")
        raise typer.Exit(1)

    logger.info(f"📁 Wrote {len(records)} days of history to {output}")
