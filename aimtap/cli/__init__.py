"""
Command-line interface module for aimtap.

Typer application with Rich formatting.
"""

from .main import app

__all__ = ["app"]
