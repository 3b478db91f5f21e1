"""Git command execution for git-grove."""

import time
from dataclasses import dataclass
from typing import Tuple

import git

from git_grove.exceptions import GitNotFoundError
from git_grove.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one git invocation."""

    args: Tuple[str, ...]
    status: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.status == 0


def describe_git_error(error: Exception) -> str:
    """Render a git failure as 'exit N: stderr' for error messages."""
    stderr = (getattr(error, "stderr", None) or str(error)).strip()
    # GitPython decorates stderr as "stderr: '...'"
    if stderr.startswith("stderr: '") and stderr.endswith("'"):
        stderr = stderr[len("stderr: '"):-1].strip()
    status = getattr(error, "status", None)
    if status is None:
        status = "unknown"
    if stderr:
        return f"exit {status}: {stderr}"
    return f"exit code {status}"


class GitCommander:
    """Runs git commands against one repository.

    Commands always run from the repository path; commands targeting another
    worktree pass ``-C <path>`` explicitly.
    """

    def __init__(self, repo_path: str):
        """Initialize the commander.

        Args:
            repo_path: Directory git commands are run from
        """
        self.repo_path = repo_path

    def _execute(self, args: Tuple[str, ...]) -> CommandResult:
        command = ["git", *args]
        start = time.monotonic()
        try:
            status, stdout, stderr = git.Git(self.repo_path).execute(
                command,
                with_extended_output=True,
                with_exceptions=False,
            )
        except git.exc.GitCommandNotFound as e:
            raise GitNotFoundError(f"git is not available in PATH: {e}") from e
        duration = time.monotonic() - start
        logger.debug(f"git {' '.join(args)} -> exit {status} ({duration:.3f}s)")
        return CommandResult(args=tuple(args), status=status, stdout=stdout, stderr=stderr)

    def run(self, *args: str) -> CommandResult:
        """Run a git command, raising on a non-zero exit.

        Raises:
            git.exc.GitCommandError: If git exits with a non-zero status
            GitNotFoundError: If git is not installed
        """
        result = self._execute(args)
        if not result.ok:
            if result.stderr:
                logger.debug(f"git {' '.join(args)} stderr: {result.stderr.strip()}")
            raise git.exc.GitCommandError(["git", *args], result.status, result.stderr, result.stdout)
        return result

    def run_quiet(self, *args: str) -> CommandResult:
        """Run a probe command whose failure is an expected answer, not an error."""
        return self._execute(args)
