"""Pytest fixtures for git-grove tests"""
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import git
import pytest

from git_grove.config import Config
from git_grove.services.git.commander import CommandResult


@dataclass
class ScriptedOutcome:
    """Canned result for every command starting with prefix."""
    prefix: Tuple[str, ...]
    status: int = 0
    stdout: str = ""
    stderr: str = ""
    once: bool = False
    effect: Optional[Callable[[Tuple[str, ...]], None]] = None


class FakeCommander:
    """GitCommander stand-in that records commands and replays scripted outcomes.

    The most recently added matching rule wins; unmatched commands succeed with
    empty output. `once` rules are consumed by their first match.
    """

    def __init__(self, repo_path: str = "/repo"):
        self.repo_path = repo_path
        self.calls: List[Tuple[str, ...]] = []
        self._rules: List[ScriptedOutcome] = []

    def on(self, *prefix: str, status: int = 0, stdout: str = "", stderr: str = "",
           once: bool = False, effect=None) -> "FakeCommander":
        self._rules.append(ScriptedOutcome(tuple(prefix), status, stdout, stderr, once, effect))
        return self

    def _execute(self, args: Tuple[str, ...]) -> CommandResult:
        self.calls.append(args)
        for rule in reversed(self._rules):
            if args[:len(rule.prefix)] == rule.prefix:
                if rule.once:
                    self._rules.remove(rule)
                if rule.effect is not None:
                    rule.effect(args)
                return CommandResult(args, rule.status, rule.stdout, rule.stderr)
        return CommandResult(args, 0, "", "")

    def run(self, *args: str) -> CommandResult:
        result = self._execute(args)
        if not result.ok:
            raise git.exc.GitCommandError(["git", *args], result.status, result.stderr, result.stdout)
        return result

    def run_quiet(self, *args: str) -> CommandResult:
        return self._execute(args)

    def commands(self) -> List[str]:
        """Issued commands as space-joined strings."""
        return [" ".join(args) for args in self.calls]

    def issued(self, *prefix: str) -> List[Tuple[str, ...]]:
        return [args for args in self.calls if args[:len(prefix)] == prefix]


def porcelain(*entries: Tuple[str, str]) -> str:
    """Build `git worktree list --porcelain` output from (path, branch) pairs.

    An empty branch renders as a detached worktree; "(bare)" renders a bare entry.
    """
    blocks = []
    for path, branch in entries:
        if branch == "(bare)":
            blocks.append(f"worktree {path}\nbare\n")
        elif branch:
            blocks.append(f"worktree {path}\nHEAD {'a' * 40}\nbranch refs/heads/{branch}\n")
        else:
            blocks.append(f"worktree {path}\nHEAD {'a' * 40}\ndetached\n")
    return "\n".join(blocks)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config():
    """Default configuration with instant retries."""
    return Config(retry_base_delay=0.0, retry_max_delay=0.0, retry_jitter=False)


@pytest.fixture
def fake_commander():
    """Recording commander with no scripted outcomes."""
    return FakeCommander()


@pytest.fixture
def worktree_listing():
    """Builder for `git worktree list --porcelain` output."""
    return porcelain


def _init_repo(repo_path: Path) -> git.Repo:
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    repo.git.branch("-M", "main")
    return repo


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()
    repo = _init_repo(repo_path)

    yield repo

    # Cleanup
    repo.close()


@pytest.fixture
def git_repo_with_remote(temp_dir):
    """Repository whose 'origin' is a local bare repository holding main and feature/remote."""
    remote_path = temp_dir / "remote.git"
    git.Repo.init(remote_path, bare=True).close()

    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()
    repo = _init_repo(repo_path)
    repo.create_remote("origin", str(remote_path))

    repo.git.checkout("-b", "feature/remote")
    (repo_path / "remote.txt").write_text("remote content\n")
    repo.index.add(["remote.txt"])
    repo.index.commit("Remote feature")
    repo.git.checkout("main")

    repo.git.push("origin", "main", "feature/remote")
    repo.git.branch("-D", "feature/remote")
    repo.git.fetch("origin")

    yield repo

    repo.close()


@pytest.fixture
def worktrees_dir(temp_dir):
    """Directory outside the repository for worktrees."""
    path = temp_dir / "worktrees"
    path.mkdir()
    return path


@pytest.fixture
def isolated_logging():
    """Undo setup_logging() changes to the root logger after the test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
