"""Command-line interface for Finboard."""
