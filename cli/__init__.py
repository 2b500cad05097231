"""Command-line surface."""
from cli.app import app, main

__all__ = ["app", "main"]
