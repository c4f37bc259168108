"""HTTP API for the Finboard dashboard."""

from .app import create_app

__all__ = ["create_app"]
