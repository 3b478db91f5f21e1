"""Automatic resolution of "branch already used by worktree" conflicts."""

from git_grove.exceptions import ConflictError, GitOperationError
from git_grove.logging_config import get_logger
from git_grove.services.git.worktrees import WorktreeService

logger = get_logger(__name__)


class ConflictResolver:
    """Frees a branch held by another worktree by detaching that worktree's HEAD.

    Refuses, without touching anything, when the other worktree is the main
    worktree or has uncommitted changes.
    """

    def __init__(self, worktree_service: WorktreeService):
        self.worktree_service = worktree_service

    def resolve_conflict(self, branch_name: str, conflicting_worktree_path: str) -> None:
        """Detach HEAD in the worktree holding branch_name.

        Raises:
            ConflictError: If the worktree is the main worktree or is dirty
            GitOperationError: If listing, status or detach fails
        """
        logger.debug(
            f"Checking worktree {conflicting_worktree_path} before resolving conflict on {branch_name}"
        )

        try:
            is_main = self.worktree_service.is_main_worktree(conflicting_worktree_path)
        except GitOperationError as e:
            raise e.with_context("worktree_path", conflicting_worktree_path)
        if is_main:
            raise ConflictError(
                branch_name,
                conflicting_worktree_path,
                resolution_error="cannot automatically resolve conflict with main worktree",
                reason=ConflictError.REASON_MAIN_WORKTREE,
            )

        if self.worktree_service.has_uncommitted_changes(conflicting_worktree_path):
            raise ConflictError(
                branch_name,
                conflicting_worktree_path,
                resolution_error="conflicting worktree has uncommitted changes",
                reason=ConflictError.REASON_UNCOMMITTED_CHANGES,
            )

        logger.debug(f"Switching {conflicting_worktree_path} to detached HEAD to free {branch_name}")
        try:
            self.worktree_service.detach_head(conflicting_worktree_path)
        except GitOperationError as e:
            raise e.with_context("branch", branch_name)

        logger.info(f"Released branch {branch_name} from worktree at {conflicting_worktree_path}")
