"""Custom exceptions for git-grove"""

from typing import Any, Dict, Optional


class GroveError(Exception):
    """Base exception for all git-grove errors."""

    retryable = False

    def __init__(self, message: str, operation: Optional[str] = None, **context: Any):
        self.message = message
        self.operation = operation
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}
        super().__init__(message)

    def with_context(self, key: str, value: Any) -> "GroveError":
        """Attach a piece of context and return the error for chaining."""
        self.context[key] = value
        return self

    def is_retryable(self) -> bool:
        return self.retryable


class ValidationError(GroveError):
    """Raised for malformed input (empty branch, bad path, bad ref name)."""

    def __init__(self, message: str, operation: str = "validation", **context: Any):
        super().__init__(message, operation, **context)


class SecurityError(GroveError):
    """Raised when a path fails traversal, NUL byte or length checks."""

    def __init__(self, message: str, path: Optional[str] = None, **context: Any):
        super().__init__(message, "path_security_validation", path=path, **context)
        self.path = path


class PermissionDeniedError(GroveError):
    """Raised when a directory cannot be written to."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(
            message or f"insufficient permissions to write to {path}",
            "permission_check",
            path=path,
        )


class FileSystemError(GroveError):
    """Raised for disk/IO failures and exhausted collision space."""

    def __init__(self, message: str, operation: str = "filesystem", **context: Any):
        super().__init__(message, operation, **context)


class GitNotFoundError(GroveError):
    """Raised when the git executable is not available."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "git is not available in PATH", "git_lookup")


class GitOperationError(GroveError):
    """Exception raised for errors in Git operations."""

    def __init__(
        self,
        operation: str,
        branch: Optional[str] = None,
        message: Optional[str] = None,
        path: Optional[str] = None,
        stderr: Optional[str] = None,
    ):
        self.branch = branch
        self.path = path
        self.stderr = stderr

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if path:
            error_msg += f" at '{path}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg, operation, branch=branch, path=path)


class NetworkError(GitOperationError):
    """Transient failure talking to a remote; safe to retry."""

    retryable = True


class ConflictError(GroveError):
    """Exception raised when a branch is already checked out in another worktree."""

    REASON_MAIN_WORKTREE = "main_worktree"
    REASON_UNCOMMITTED_CHANGES = "uncommitted_changes"

    def __init__(
        self,
        branch: str,
        worktree_path: Optional[str] = None,
        resolution_attempted: bool = False,
        resolution_error: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        self.branch = branch
        self.worktree_path = worktree_path
        self.resolution_attempted = resolution_attempted
        self.resolution_error = resolution_error
        self.reason = reason

        error_msg = f"branch '{branch}' is already used by worktree"
        if worktree_path:
            error_msg += f" at '{worktree_path}'"
        if resolution_error:
            error_msg += f": {resolution_error}"

        super().__init__(
            error_msg,
            "worktree_conflict",
            branch=branch,
            worktree_path=worktree_path,
            resolution_attempted=resolution_attempted,
            resolution_error=resolution_error,
            reason=reason,
        )


class NotFoundError(GroveError):
    """Raised when a referenced branch or remote does not exist."""


class BranchNotFoundError(NotFoundError):
    """Exception raised when a branch is not found."""

    def __init__(self, branch: str, remote: Optional[str] = None):
        self.branch = branch
        self.remote = remote
        if remote:
            message = f"branch '{branch}' not found on remote '{remote}'"
        else:
            message = f"branch '{branch}' does not exist"
        super().__init__(message, "branch_resolution", branch=branch, remote=remote)


class RemoteNotFoundError(NotFoundError):
    """Exception raised when a remote is not configured."""

    def __init__(self, remote: str, message: Optional[str] = None):
        self.remote = remote
        super().__init__(message or f"remote '{remote}' not found", "remote_validation", remote=remote)


class RetryCancelledError(GroveError):
    """Raised when a retried operation is cancelled or runs past its deadline."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error
        message = f"retry operation cancelled after {attempts} attempt(s)"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message, "retry", attempts=attempts)
