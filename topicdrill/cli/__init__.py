"""
Terminal interface for topicdrill.
"""

from .drill_cli import app, main

__all__ = ["app", "main"]
