"""Command-line interface for git-grove.

This package provides the CLI entry point, argument parsing and progress rendering.
"""

from .main import main
from .args import parse_args

__all__ = ["main", "parse_args"]
