"""Command-line interface for the authorization engine."""

from .main import app

__all__ = ["app"]
