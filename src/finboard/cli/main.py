"""Main CLI application for Finboard.

This module provides the unified entry point for Finboard's CLI, organizing
commands into groups for balances, email notifications and the database,
plus the ``serve`` command that runs the HTTP API.
"""

import logging
from typing import Annotated

import typer

from finboard.config import get_settings
from finboard.logging import LoggingConfig, setup_logging

from .commands import balances, db, notify, serve

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="finboard",
    help="Finboard: personal finance dashboard backend",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for the Finboard CLI.

    Configuration comes from FINBOARD_* environment variables or a .env file
    in the working directory, e.g. FINBOARD_DATABASE__PATH or
    FINBOARD_EMAIL__HOST. Plaid credentials may also be given as
    PLAID_CLIENT_ID / PLAID_SECRET / PLAID_ENV.
    """
    try:
        config = LoggingConfig.from_settings(get_settings().logging)
    except ValueError:
        # Reported by the command that needs the settings; log with defaults
        config = None
    setup_logging(config, cli_mode=True, verbose=verbose)


app.command("serve")(serve.serve)
app.add_typer(balances.app, name="balances", help="Refresh and inspect balances")
app.add_typer(notify.app, name="email", help="Email notification commands")
app.add_typer(db.app, name="db", help="Database setup and status commands")


def main() -> None:
    """Entry point for the Finboard CLI application."""
    app()


if __name__ == "__main__":
    main()
