"""Database commands for the Finboard CLI."""

import logging

import typer

from finboard.cli.components import load_settings, open_store

app = typer.Typer(help="Database setup and status commands")
logger = logging.getLogger(__name__)


@app.command("init")
def init_database() -> None:
    """Create the database file and its tables if they do not exist."""
    settings = load_settings()
    with open_store(settings):
        pass
    logger.info(f"✅ Database ready at {settings.database.path}")


@app.command("status")
def database_status() -> None:
    """Show row counts for each table."""
    settings = load_settings()
    with open_store(settings) as store:
        counts = store.get_table_counts()

    typer.echo(f"Database: {settings.database.path}")
    for table, count in counts.items():
        typer.echo(f"  {table}: {count}")
