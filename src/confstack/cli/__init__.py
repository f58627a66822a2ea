"""
CLI module for confstack.

Provides the command-line interface using Click.
"""

from confstack.cli.main import cli, main

__all__ = ["main", "cli"]
