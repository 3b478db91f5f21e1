"""Tests for ConflictResolver"""
from unittest.mock import Mock

import pytest

from git_grove.exceptions import ConflictError, GitOperationError
from git_grove.services.conflict_resolver import ConflictResolver
from git_grove.services.git.worktrees import WorktreeService


@pytest.fixture
def worktree_service():
    service = Mock(spec=WorktreeService)
    service.is_main_worktree.return_value = False
    service.has_uncommitted_changes.return_value = False
    return service


class TestResolveConflict:
    """Test the ordered safety checks."""

    def test_clean_worktree_is_detached(self, worktree_service):
        """A clean secondary worktree is switched to detached HEAD."""
        ConflictResolver(worktree_service).resolve_conflict("feature", "/wt/feature")

        worktree_service.detach_head.assert_called_once_with("/wt/feature")

    def test_main_worktree_refused_without_status_check(self, worktree_service):
        """The main worktree is never touched, not even queried for status."""
        worktree_service.is_main_worktree.return_value = True

        with pytest.raises(ConflictError) as exc_info:
            ConflictResolver(worktree_service).resolve_conflict("main", "/repo")

        assert exc_info.value.reason == ConflictError.REASON_MAIN_WORKTREE
        worktree_service.has_uncommitted_changes.assert_not_called()
        worktree_service.detach_head.assert_not_called()

    def test_dirty_worktree_refused(self, worktree_service):
        """Uncommitted changes block resolution and nothing is detached."""
        worktree_service.has_uncommitted_changes.return_value = True

        with pytest.raises(ConflictError) as exc_info:
            ConflictResolver(worktree_service).resolve_conflict("feature", "/wt/feature")

        error = exc_info.value
        assert error.reason == ConflictError.REASON_UNCOMMITTED_CHANGES
        assert error.worktree_path == "/wt/feature"
        assert "uncommitted changes" in str(error)
        worktree_service.detach_head.assert_not_called()

    def test_status_failure_propagates(self, worktree_service):
        """An unknown status is not treated as clean."""
        worktree_service.has_uncommitted_changes.side_effect = GitOperationError("status", path="/wt/x")

        with pytest.raises(GitOperationError):
            ConflictResolver(worktree_service).resolve_conflict("feature", "/wt/x")
        worktree_service.detach_head.assert_not_called()

    def test_detach_failure_carries_branch(self, worktree_service):
        worktree_service.detach_head.side_effect = GitOperationError("checkout --detach", path="/wt/x")

        with pytest.raises(GitOperationError) as exc_info:
            ConflictResolver(worktree_service).resolve_conflict("feature", "/wt/x")

        assert exc_info.value.context["branch"] == "feature"
