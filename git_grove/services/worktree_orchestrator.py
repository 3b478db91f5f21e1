"""Atomic worktree creation with conflict resolution and rollback."""

import os
import re
import shutil
from typing import Callable, List, Optional

import git

from git_grove.exceptions import (
    ConflictError,
    FileSystemError,
    GitOperationError,
    GroveError,
    PermissionDeniedError,
    ValidationError,
)
from git_grove.logging_config import get_logger
from git_grove.models.worktree import (
    ConflictRecord,
    OperationPhase,
    OperationState,
    WorktreeOptions,
    WorktreeRequest,
    WorktreeResult,
)
from git_grove.services.conflict_resolver import ConflictResolver
from git_grove.services.git.commander import GitCommander, describe_git_error
from git_grove.services.git.worktrees import WorktreeService

logger = get_logger(__name__)

# "already used by worktree at" (git >= 2.42) / "is already checked out at" (older)
BRANCH_IN_USE_MARKERS = ("already used by worktree", "is already checked out at")
_WORKTREE_PATH_IN_MESSAGE = re.compile(r"at '([^']+)'")


def is_branch_in_use_error(error: Exception) -> bool:
    text = str(error)
    return any(marker in text for marker in BRANCH_IN_USE_MARKERS)


def extract_worktree_path(message: str) -> str:
    """Pull the conflicting worktree path out of a git error message."""
    match = _WORKTREE_PATH_IN_MESSAGE.search(message)
    return match.group(1) if match else ""


class WorktreeOrchestrator:
    """Drives one worktree creation attempt end-to-end.

    Validating -> PreparingDirectories -> Creating
    -> [ConflictDetected -> Resolving -> Retrying] -> ConfiguringTracking -> Done,
    with Failed reachable from every phase and always followed by rollback.
    """

    def __init__(
        self,
        commander: GitCommander,
        worktree_service: Optional[WorktreeService] = None,
        conflict_resolver: Optional[ConflictResolver] = None,
        default_remote: str = "origin",
    ):
        self.commander = commander
        self.worktree_service = worktree_service or WorktreeService(commander)
        self.conflict_resolver = conflict_resolver or ConflictResolver(self.worktree_service)
        self.default_remote = default_remote

    def create(self, request: WorktreeRequest, progress: Optional[Callable[[str], None]] = None) -> WorktreeResult:
        return self.create_worktree(request.branch_name, request.target_path, request.options, progress)

    def create_worktree(
        self,
        branch_name: str,
        path: str,
        options: Optional[WorktreeOptions] = None,
        progress: Optional[Callable[[str], None]] = None,
    ) -> WorktreeResult:
        """Create a worktree for branch_name at path, rolling back on any failure.

        Args:
            branch_name: Resolved branch name; created when it does not exist locally
            path: Absolute target path
            options: Tracking and base-branch options
            progress: Optional callback invoked synchronously at checkpoints

        Returns:
            WorktreeResult describing the new worktree

        Raises:
            ValidationError: Empty branch or path, or a relative path (nothing is touched)
            ConflictError: Branch is in use elsewhere and could not be freed
            GitOperationError: Any other git failure
            FileSystemError, PermissionDeniedError: Directory preparation failed
        """
        branch_name = (branch_name or "").strip()
        path = (path or "").strip()
        if not branch_name:
            raise ValidationError("branch name cannot be empty", "worktree_validation")
        if not path:
            raise ValidationError("worktree path cannot be empty", "worktree_validation", branch=branch_name)
        if not os.path.isabs(path):
            raise ValidationError(
                "worktree path must be absolute", "worktree_validation", branch=branch_name, path=path
            )

        state = OperationState(
            branch_name=branch_name,
            path=path,
            options=options or WorktreeOptions(),
            progress=progress,
            path_preexisted=os.path.lexists(path),
        )

        try:
            self._prepare_directories(state)
            tracking_branch = self._create(state)
        except GroveError as e:
            self._fail(state, e)
            raise
        except Exception as e:
            self._fail(state, e)
            raise GitOperationError(
                "worktree add", branch=branch_name, message=str(e), path=path
            ) from e
        except BaseException as e:
            # Interrupted (Ctrl-C): undo, then let the interrupt propagate unchanged
            self._fail(state, e)
            raise

        state.phase = OperationPhase.DONE
        logger.info(f"Created worktree for {branch_name} at {path}")
        return WorktreeResult(
            path=path,
            branch_name=branch_name,
            was_created=not state.branch_existed,
            tracking_branch=tracking_branch,
        )

    def _fail(self, state: OperationState, error: BaseException) -> None:
        logger.debug(f"Worktree creation failed during {state.phase.value}: {error}")
        state.phase = OperationPhase.FAILED
        self._rollback(state)

    def _prepare_directories(self, state: OperationState) -> None:
        """Create missing ancestors of the target, recording only the ones created here."""
        state.phase = OperationPhase.PREPARING_DIRECTORIES
        parent = os.path.dirname(state.path)

        missing: List[str] = []
        current = parent
        while current and not os.path.exists(current):
            missing.insert(0, current)
            next_parent = os.path.dirname(current)
            if next_parent == current:
                break
            current = next_parent

        for directory in missing:
            try:
                os.mkdir(directory, 0o755)
            except FileExistsError:
                # Created concurrently by someone else: not ours to remove
                continue
            except PermissionError as e:
                raise PermissionDeniedError(directory) from e
            except OSError as e:
                raise FileSystemError(
                    f"failed to create directory {directory}: {e}", "prepare_directories", path=directory
                ) from e
            state.created_dirs.append(directory)

    def _branch_exists(self, branch_name: str) -> bool:
        result = self.commander.run_quiet("show-ref", "--verify", "--quiet", f"refs/heads/{branch_name}")
        return result.ok

    def _create(self, state: OperationState) -> Optional[str]:
        state.phase = OperationPhase.CREATING
        state.branch_existed = self._branch_exists(state.branch_name)

        try:
            self._add_worktree(state, state.branch_existed)
        except git.exc.GitCommandError as e:
            if not is_branch_in_use_error(e):
                raise self._creation_error(state, e) from e
            self._handle_conflict(state, e)

        if not state.branch_existed and state.options.track_remote:
            return self._setup_remote_tracking(state)
        return None

    def _add_worktree(self, state: OperationState, branch_exists: bool) -> None:
        if branch_exists:
            self.commander.run("worktree", "add", state.path, state.branch_name)
            return

        args = ["worktree", "add", "-b", state.branch_name, state.path]
        if state.options.base_branch:
            args.append(state.options.base_branch)
        self.commander.run(*args)

    def _creation_error(self, state: OperationState, error: Exception) -> GitOperationError:
        operation = "worktree add" if state.branch_existed else "worktree add -b"
        return GitOperationError(
            operation,
            branch=state.branch_name,
            message=describe_git_error(error),
            path=state.path,
            stderr=getattr(error, "stderr", None),
        )

    def _find_conflicting_worktree(self, state: OperationState, error: Exception) -> str:
        """Locate the worktree holding the branch: live listing first, error text second."""
        try:
            path = self.worktree_service.find_worktree_by_branch(state.branch_name, exclude_path=state.path)
        except GitOperationError as e:
            logger.debug(f"Worktree listing failed, falling back to error message: {e}")
            path = None
        return path or extract_worktree_path(str(error))

    def _handle_conflict(self, state: OperationState, error: Exception) -> None:
        state.phase = OperationPhase.CONFLICT_DETECTED
        record = ConflictRecord(state.branch_name, self._find_conflicting_worktree(state, error))
        if not record.conflicting_worktree_path:
            raise ConflictError(
                state.branch_name,
                resolution_error="could not determine which worktree holds the branch",
            ) from error

        state.report(f"Branch '{state.branch_name}' is in use, attempting automatic resolution...")
        logger.debug(
            f"Attempting automatic conflict resolution for {state.branch_name} "
            f"held by {record.conflicting_worktree_path}"
        )

        state.phase = OperationPhase.RESOLVING
        try:
            self.conflict_resolver.resolve_conflict(record.branch_name, record.conflicting_worktree_path)
        except GroveError as resolve_error:
            logger.debug(f"Automatic conflict resolution failed: {resolve_error}")
            reason = getattr(resolve_error, "reason", None)
            if reason == ConflictError.REASON_UNCOMMITTED_CHANGES:
                state.report("Cannot resolve automatically: conflicting worktree has uncommitted changes")
            elif reason == ConflictError.REASON_MAIN_WORKTREE:
                state.report("Cannot resolve automatically: branch is checked out in the main worktree")
            else:
                state.report("Automatic conflict resolution failed")

            raise ConflictError(
                state.branch_name,
                record.conflicting_worktree_path,
                resolution_attempted=True,
                resolution_error=getattr(resolve_error, "resolution_error", None) or str(resolve_error),
                reason=reason,
            ) from resolve_error

        state.report("Resolved conflict: switched previous worktree to detached HEAD")
        logger.debug(f"Conflict on {state.branch_name} resolved, retrying worktree creation")

        # Exactly one retry; a second conflict is not resolved again
        state.phase = OperationPhase.RETRYING
        state.branch_existed = self._branch_exists(state.branch_name)
        try:
            self._add_worktree(state, state.branch_existed)
        except git.exc.GitCommandError as retry_error:
            if is_branch_in_use_error(retry_error):
                raise ConflictError(
                    state.branch_name,
                    extract_worktree_path(str(retry_error)) or record.conflicting_worktree_path,
                    resolution_attempted=True,
                    resolution_error="branch was claimed again before the retry",
                ) from retry_error
            raise self._creation_error(state, retry_error) from retry_error

    def _default_remote(self) -> str:
        result = self.commander.run_quiet("config", "--get", "clone.defaultRemoteName")
        remote = result.stdout.strip() if result.ok else ""
        return remote or self.default_remote

    def _setup_remote_tracking(self, state: OperationState) -> Optional[str]:
        """Point the new branch at <remote>/<branch> when that exists; never fatal."""
        state.phase = OperationPhase.CONFIGURING_TRACKING
        remote_branch = f"{self._default_remote()}/{state.branch_name}"

        listed = self.commander.run_quiet("branch", "-r", "--list", remote_branch)
        if not listed.ok or not listed.stdout.strip():
            logger.debug(f"Skipping upstream setup, {remote_branch} does not exist")
            return None

        state.report(f"Setting upstream to {remote_branch}")
        try:
            self.commander.run(
                "-C", state.path, "branch", f"--set-upstream-to={remote_branch}", state.branch_name
            )
        except git.exc.GitCommandError as e:
            logger.warning(f"Could not set upstream for {state.branch_name}: {describe_git_error(e)}")
            return None
        return remote_branch

    def _rollback(self, state: OperationState) -> None:
        """Best-effort undo; failures are logged at debug level and never raised."""
        if state.path_preexisted:
            logger.debug(f"Leaving pre-existing path {state.path} in place during rollback")
        elif os.path.lexists(state.path):
            if not self.worktree_service.remove_worktree(state.path, force=True):
                try:
                    shutil.rmtree(state.path)
                except OSError as e:
                    logger.debug(f"Failed to remove worktree directory {state.path} during rollback: {e}")

        for directory in reversed(state.created_dirs):
            try:
                os.rmdir(directory)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.debug(f"Could not remove directory {directory} during rollback (may contain user files): {e}")
