"""Copying untracked local files (env files, local overrides) into new worktrees."""

import os
import shutil
from datetime import datetime
from fnmatch import fnmatch
from typing import Callable, List, Optional, Union

from rich.prompt import Prompt

from git_grove.exceptions import FileSystemError, GitOperationError, ValidationError
from git_grove.logging_config import get_logger
from git_grove.models.create import CopyStrategy
from git_grove.services.git.commander import GitCommander
from git_grove.services.git.worktrees import WorktreeService

logger = get_logger(__name__)

ENV_COPY_PATTERNS = [".env*", "*.local.*", "docker-compose.override.yml"]

# Called with the relative path of a conflicting file; returns "skip", "overwrite" or "backup"
ConflictPrompt = Callable[[str], str]


def ask_conflict_action(relative_path: str) -> str:
    return Prompt.ask(
        f"[yellow]{relative_path}[/yellow] already exists in the new worktree",
        choices=["skip", "overwrite", "backup"],
        default="skip",
    )


class FileManager:
    """Copies files matching configured patterns from a source worktree."""

    def __init__(
        self,
        commander: GitCommander,
        worktree_service: Optional[WorktreeService] = None,
        prompt: Optional[ConflictPrompt] = None,
    ):
        self.commander = commander
        self.worktree_service = worktree_service or WorktreeService(commander)
        self.prompt = prompt or ask_conflict_action

    def copy_files(
        self,
        source: str,
        target: str,
        patterns: List[str],
        strategy: Union[CopyStrategy, str] = CopyStrategy.SKIP,
        dry_run: bool = False,
    ) -> int:
        """Copy files matching patterns from source to target.

        Args:
            source: Worktree to copy from
            target: Worktree to copy into
            patterns: fnmatch globs; a trailing '/' selects a directory subtree
            strategy: How to handle files that already exist in target
            dry_run: Count what would be copied without touching the filesystem

        Returns:
            Number of files copied (or that would be copied)

        Raises:
            ValidationError: Missing source/target or unknown strategy
            FileSystemError: If a file cannot be copied
        """
        if not source or not target:
            raise ValidationError("source and target worktree paths are required", "file_copy")
        if not patterns:
            return 0
        strategy = CopyStrategy(strategy) if isinstance(strategy, str) else strategy

        for path in (source, target):
            if not os.path.isdir(path):
                raise ValidationError(f"worktree path does not exist: {path}", "file_copy", path=path)

        copied = 0
        for relative in self.find_matching_files(source, patterns):
            src = os.path.join(source, relative)
            dst = os.path.join(target, relative)

            if os.path.lexists(dst):
                action = strategy.value
                if strategy == CopyStrategy.PROMPT:
                    action = self._ask(relative)
                if action == CopyStrategy.SKIP.value:
                    logger.debug(f"Skipping existing file {relative}")
                    continue
                if action == CopyStrategy.BACKUP.value and not dry_run:
                    self._backup(dst)

            if not dry_run:
                self._copy(src, dst)
            copied += 1

        logger.debug(f"Copied {copied} file(s) from {source} to {target}")
        return copied

    def find_matching_files(self, root: str, patterns: List[str]) -> List[str]:
        """Relative paths under root matching any pattern, in walk order, without '.git'."""
        matches = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d != ".git")
            for name in sorted(filenames):
                if name == ".git":
                    continue
                relative = os.path.relpath(os.path.join(dirpath, name), root).replace(os.sep, "/")
                if any(self._matches(relative, pattern) for pattern in patterns):
                    matches.append(relative)
        return matches

    def _ask(self, relative: str) -> str:
        try:
            return self.prompt(relative)
        except EOFError:
            # stdin closed or not a terminal
            logger.warning(f"No answer available for existing file {relative}, skipping it")
            return CopyStrategy.SKIP.value

    @staticmethod
    def _matches(relative: str, pattern: str) -> bool:
        if pattern.endswith("/"):
            directory = pattern.rstrip("/")
            parents = relative.split("/")[:-1]
            return any(
                fnmatch("/".join(parents[: i + 1]), directory) for i in range(len(parents))
            )
        return fnmatch(relative, pattern) or fnmatch(os.path.basename(relative), pattern)

    @staticmethod
    def _backup(path: str) -> None:
        backup = f"{path}.backup.{datetime.now().strftime('%Y%m%d_%H%M%S')}"
        try:
            shutil.copy2(path, backup)
        except OSError as e:
            raise FileSystemError(f"failed to back up {path}: {e}", "file_backup", path=path) from e
        logger.debug(f"Backed up {path} to {backup}")

    @staticmethod
    def _copy(src: str, dst: str) -> None:
        try:
            os.makedirs(os.path.dirname(dst), exist_ok=True)
            shutil.copy2(src, dst)
        except OSError as e:
            raise FileSystemError(f"failed to copy {src}: {e}", "file_copy", path=dst) from e

    def find_worktree_by_branch(self, branch: str) -> Optional[str]:
        return self.worktree_service.find_worktree_by_branch(branch)

    def discover_source_worktree(self) -> str:
        """Worktree to copy from: default branch, then current branch, then main worktree.

        Raises:
            GitOperationError: If no worktree can be found
        """
        remotes = self.commander.run_quiet("remote")
        first_remote = remotes.stdout.split()[0] if remotes.ok and remotes.stdout.split() else None
        if first_remote:
            default_branch = self._default_branch(first_remote)
            if default_branch:
                path = self.find_worktree_by_branch(default_branch)
                if path:
                    return path

        current = self.commander.run_quiet("branch", "--show-current")
        if current.ok and current.stdout.strip():
            path = self.find_worktree_by_branch(current.stdout.strip())
            if path:
                return path

        main = self.worktree_service.main_worktree()
        if main is None:
            raise GitOperationError("discover source worktree", message="no worktree found")
        return main.path

    def _default_branch(self, remote: str) -> Optional[str]:
        result = self.commander.run_quiet("symbolic-ref", "--short", f"refs/remotes/{remote}/HEAD")
        if not result.ok:
            return None
        ref = result.stdout.strip()
        prefix = f"{remote}/"
        return ref[len(prefix):] if ref.startswith(prefix) else ref or None
