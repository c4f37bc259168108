"""Command that runs the dashboard HTTP API."""

import logging

import typer
import uvicorn

from finboard.api.app import create_app
from finboard.cli.components import (
    build_notifier,
    build_plaid_client,
    load_settings,
    open_store,
)

logger = logging.getLogger(__name__)


def serve(
    host: str | None = typer.Option(
        None, "--host", help="Bind address (default: from settings)"
    ),
    port: int | None = typer.Option(
        None, "--port", help="Bind port (default: from settings)"
    ),
    cors_origin: list[str] = typer.Option(
        [],
        "--cors-origin",
        help="Allow browser calls from this origin (repeatable)",
    ),
) -> None:
    """Serve the HTTP API used by the dashboard frontend.

    The database, Plaid client and email notifier are created once here and
    shared by every request until the server stops.
    """
    settings = load_settings(require_plaid=True)
    bind_host = host or settings.host
    bind_port = port or settings.port

    with open_store(settings) as store:
        api = create_app(
            settings,
            store=store,
            provider=build_plaid_client(settings),
            notifier=build_notifier(settings),
            cors_origins=cors_origin,
        )
        logger.info(f"🚀 Serving Finboard API on http://{bind_host}:{bind_port}")
        uvicorn.run(api, host=bind_host, port=bind_port, log_config=None)
