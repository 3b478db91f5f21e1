"""Worktree registry service for git-grove."""

import os
from typing import Any, Dict, List, Optional

import git

from git_grove.exceptions import GitOperationError
from git_grove.logging_config import get_logger
from git_grove.models.worktree import WorktreeInfo
from git_grove.services.git.commander import GitCommander, describe_git_error

logger = get_logger(__name__)


def normalize_path(path: str) -> str:
    """Canonical form used to compare worktree paths."""
    return os.path.normcase(os.path.realpath(path))


def parse_worktree_porcelain(output: str) -> List[WorktreeInfo]:
    """Parse `git worktree list --porcelain` output.

    Format:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name   (or "detached" / "bare")
        (blank line between worktrees)
    """
    worktrees: List[WorktreeInfo] = []
    current: Dict[str, Any] = {}
    main_seen = False

    def flush():
        nonlocal main_seen
        if not current.get("path"):
            return
        is_bare = current.get("bare", False)
        is_main = not is_bare and not main_seen
        if is_main:
            main_seen = True
        worktrees.append(
            WorktreeInfo(
                path=current["path"],
                branch_name=current.get("branch", ""),
                commit_sha=current.get("HEAD", ""),
                is_main=is_main,
                is_bare=is_bare,
                is_detached=current.get("detached", False),
                is_locked=current.get("locked", False),
                is_prunable=current.get("prunable", False),
            )
        )

    for line in output.split("\n"):
        line = line.strip()

        if not line:
            flush()
            current = {}
            continue

        key, _, value = line.partition(" ")
        if key == "worktree":
            if current:
                flush()
            current = {"path": value}
        elif key == "HEAD":
            current["HEAD"] = value
        elif key == "branch":
            current["branch"] = value[len("refs/heads/"):] if value.startswith("refs/heads/") else ""
        elif key in ("detached", "bare", "locked", "prunable"):
            current[key] = True

    flush()
    return worktrees


class WorktreeService:
    """Live queries and mutations against the repository's worktree registry.

    Nothing is cached: other processes may change the registry at any time.
    """

    def __init__(self, commander: GitCommander):
        self.commander = commander

    def list_worktrees(self) -> List[WorktreeInfo]:
        """Get information about all registered worktrees.

        Raises:
            GitOperationError: If the worktree list cannot be read
        """
        try:
            output = self.commander.run("worktree", "list", "--porcelain").stdout
        except git.exc.GitCommandError as e:
            raise GitOperationError("worktree list", message=describe_git_error(e)) from e

        worktrees = parse_worktree_porcelain(output)
        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return worktrees

    def main_worktree(self) -> Optional[WorktreeInfo]:
        """The primary worktree (first non-bare entry), if any."""
        for wt in self.list_worktrees():
            if wt.is_main:
                return wt
        return None

    def is_main_worktree(self, path: str) -> bool:
        main = self.main_worktree()
        return main is not None and normalize_path(main.path) == normalize_path(path)

    def find_worktree_by_branch(self, branch_name: str, exclude_path: Optional[str] = None) -> Optional[str]:
        """Path of the worktree that has branch_name checked out, if any."""
        excluded = normalize_path(exclude_path) if exclude_path else None
        for wt in self.list_worktrees():
            if wt.branch_name != branch_name:
                continue
            if excluded and normalize_path(wt.path) == excluded:
                continue
            return wt.path
        return None

    def has_uncommitted_changes(self, worktree_path: str) -> bool:
        """Whether the worktree has staged, modified or untracked files.

        Raises:
            GitOperationError: If the status cannot be determined
        """
        try:
            status = self.commander.run("-C", worktree_path, "status", "--porcelain").stdout
        except git.exc.GitCommandError as e:
            raise GitOperationError(
                "status", message=describe_git_error(e), path=worktree_path
            ) from e
        return bool(status.strip())

    def detach_head(self, worktree_path: str) -> None:
        """Switch a worktree to a detached HEAD at its current commit."""
        try:
            self.commander.run("-C", worktree_path, "checkout", "--detach")
        except git.exc.GitCommandError as e:
            raise GitOperationError(
                "checkout --detach", message=describe_git_error(e), path=worktree_path
            ) from e
        logger.info(f"Detached HEAD in worktree at {worktree_path}")

    def remove_worktree(self, path: str, force: bool = False) -> bool:
        """Remove a worktree registration and its directory.

        Returns:
            True on success; failures are logged at debug level
        """
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
        args.append(path)

        result = self.commander.run_quiet(*args)
        if not result.ok:
            logger.debug(
                f"git worktree remove failed for {path} (exit {result.status}): {result.stderr.strip()}"
            )
            return False
        logger.debug(f"Removed worktree at {path}")
        return True
