"""
git-grove - Atomic, collision-free git worktree creation
"""

from .__version__ import __version__
from .cli.main import main

__all__ = ["main", "__version__"]
