"""Command line interface for catalogview."""

from .main import app, create_app

__all__ = ["app", "create_app"]
