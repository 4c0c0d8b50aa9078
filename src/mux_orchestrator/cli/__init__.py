"""Command-line interface for mux."""

from .main import main

__all__ = ["main"]
