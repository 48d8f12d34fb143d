"""Command-line interface for Cadence."""

from .main import main

__all__ = ["main"]
