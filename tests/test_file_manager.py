"""Tests for FileManager"""
from unittest.mock import Mock

import pytest

from git_grove.exceptions import GitOperationError, ValidationError
from git_grove.models.create import CopyStrategy
from git_grove.services.file_manager import ENV_COPY_PATTERNS, FileManager


@pytest.fixture
def worktrees(temp_dir):
    """Source worktree with a mix of env, local and tracked-looking files, plus an empty target."""
    source = temp_dir / "source"
    target = temp_dir / "target"
    source.mkdir()
    target.mkdir()

    (source / ".env").write_text("SECRET=1\n")
    (source / ".env.test").write_text("SECRET=2\n")
    (source / "settings.local.json").write_text("{}\n")
    (source / "README.md").write_text("# readme\n")
    (source / "config").mkdir()
    (source / "config" / "app.local.yml").write_text("debug: true\n")
    (source / "config" / "app.yml").write_text("debug: false\n")
    (source / ".git").mkdir()
    (source / ".git" / ".env").write_text("never copied\n")
    return source, target


@pytest.fixture
def manager(fake_commander):
    return FileManager(fake_commander)


class TestFindMatchingFiles:
    """Test pattern matching."""

    def test_env_patterns(self, manager, worktrees):
        source, _ = worktrees

        matches = manager.find_matching_files(str(source), ENV_COPY_PATTERNS)

        assert matches == [".env", ".env.test", "settings.local.json", "config/app.local.yml"]

    def test_git_directory_skipped(self, manager, worktrees):
        source, _ = worktrees

        assert all(not m.startswith(".git/") for m in manager.find_matching_files(str(source), ["*"]))

    def test_directory_pattern(self, manager, worktrees):
        source, _ = worktrees

        matches = manager.find_matching_files(str(source), ["config/"])

        assert matches == ["config/app.local.yml", "config/app.yml"]

    def test_relative_path_pattern(self, manager, worktrees):
        source, _ = worktrees

        assert manager.find_matching_files(str(source), ["config/*.yml"]) == [
            "config/app.local.yml",
            "config/app.yml",
        ]


class TestCopyFiles:
    """Test copying and conflict strategies."""

    def test_copies_into_nested_directories(self, manager, worktrees):
        source, target = worktrees

        count = manager.copy_files(str(source), str(target), ENV_COPY_PATTERNS)

        assert count == 4
        assert (target / ".env").read_text() == "SECRET=1\n"
        assert (target / "config" / "app.local.yml").exists()
        assert not (target / "README.md").exists()

    def test_no_patterns_copies_nothing(self, manager, worktrees):
        source, target = worktrees

        assert manager.copy_files(str(source), str(target), []) == 0

    def test_missing_target(self, manager, worktrees, temp_dir):
        source, _ = worktrees

        with pytest.raises(ValidationError):
            manager.copy_files(str(source), str(temp_dir / "missing"), [".env"])

    def test_skip_existing(self, manager, worktrees):
        source, target = worktrees
        (target / ".env").write_text("KEEP\n")

        count = manager.copy_files(str(source), str(target), [".env"], CopyStrategy.SKIP)

        assert count == 0
        assert (target / ".env").read_text() == "KEEP\n"

    def test_overwrite_existing(self, manager, worktrees):
        source, target = worktrees
        (target / ".env").write_text("OLD\n")

        count = manager.copy_files(str(source), str(target), [".env"], "overwrite")

        assert count == 1
        assert (target / ".env").read_text() == "SECRET=1\n"

    def test_backup_existing(self, manager, worktrees):
        source, target = worktrees
        (target / ".env").write_text("OLD\n")

        manager.copy_files(str(source), str(target), [".env"], CopyStrategy.BACKUP)

        backups = list(target.glob(".env.backup.*"))
        assert len(backups) == 1
        assert backups[0].read_text() == "OLD\n"
        assert (target / ".env").read_text() == "SECRET=1\n"

    def test_prompt_decides_per_file(self, fake_commander, worktrees):
        source, target = worktrees
        (target / ".env").write_text("OLD\n")
        (target / ".env.test").write_text("OLD TEST\n")
        prompt = Mock(side_effect=["overwrite", "skip"])
        manager = FileManager(fake_commander, prompt=prompt)

        count = manager.copy_files(str(source), str(target), [".env*"], CopyStrategy.PROMPT)

        assert count == 1
        assert [c.args[0] for c in prompt.call_args_list] == [".env", ".env.test"]
        assert (target / ".env").read_text() == "SECRET=1\n"
        assert (target / ".env.test").read_text() == "OLD TEST\n"

    def test_prompt_without_terminal_skips(self, fake_commander, worktrees):
        source, target = worktrees
        (target / ".env").write_text("OLD\n")
        manager = FileManager(fake_commander, prompt=Mock(side_effect=EOFError))

        count = manager.copy_files(str(source), str(target), [".env"], CopyStrategy.PROMPT)

        assert count == 0
        assert (target / ".env").read_text() == "OLD\n"

    def test_dry_run(self, manager, worktrees):
        source, target = worktrees

        count = manager.copy_files(str(source), str(target), ENV_COPY_PATTERNS, dry_run=True)

        assert count == 4
        assert list(target.iterdir()) == []


class TestDiscoverSourceWorktree:
    """Test choosing the worktree to copy from."""

    def test_default_branch_worktree(self, fake_commander, worktree_listing):
        fake_commander.on("remote", stdout="origin\n")
        fake_commander.on("symbolic-ref", stdout="origin/main\n")
        fake_commander.on("worktree", "list", stdout=worktree_listing(("/repo", "main"), ("/wt/feature", "feature")))

        assert FileManager(fake_commander).discover_source_worktree() == "/repo"

    def test_current_branch_without_remote(self, fake_commander, worktree_listing):
        fake_commander.on("remote", stdout="")
        fake_commander.on("branch", "--show-current", stdout="feature\n")
        fake_commander.on("worktree", "list", stdout=worktree_listing(("/repo", "main"), ("/wt/feature", "feature")))

        assert FileManager(fake_commander).discover_source_worktree() == "/wt/feature"

    def test_falls_back_to_main_worktree(self, fake_commander, worktree_listing):
        fake_commander.on("remote", stdout="origin\n")
        fake_commander.on("symbolic-ref", status=128, stderr="fatal: ref does not exist")
        fake_commander.on("branch", "--show-current", stdout="")
        fake_commander.on("worktree", "list", stdout=worktree_listing(("/repo", "develop")))

        assert FileManager(fake_commander).discover_source_worktree() == "/repo"

    def test_no_worktrees(self, fake_commander):
        fake_commander.on("remote", stdout="")

        with pytest.raises(GitOperationError):
            FileManager(fake_commander).discover_source_worktree()
