"""Finboard CLI command groups."""
