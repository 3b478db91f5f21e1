"""Git-related services for git-grove."""

from .commander import CommandResult, GitCommander, describe_git_error
from .worktrees import WorktreeService, normalize_path, parse_worktree_porcelain

__all__ = [
    "CommandResult",
    "GitCommander",
    "describe_git_error",
    "WorktreeService",
    "normalize_path",
    "parse_worktree_porcelain",
]
