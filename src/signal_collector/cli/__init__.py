"""
Command-line interface for the signal collector.
"""

from .main import cli, main

__all__ = ["cli", "main"]
