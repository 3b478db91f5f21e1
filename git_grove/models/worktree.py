"""Worktree data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional


@dataclass
class WorktreeInfo:
    """Information about a git worktree."""

    path: str
    branch_name: str  # Empty when detached or bare
    commit_sha: str
    is_main: bool  # First non-bare entry in the worktree list
    is_bare: bool = False
    is_detached: bool = False
    is_locked: bool = False
    is_prunable: bool = False

    def __str__(self) -> str:
        """String representation of worktree."""
        if self.is_bare:
            label = "(bare)"
        elif self.is_detached or not self.branch_name:
            label = f"(detached {self.commit_sha[:7]})"
        else:
            label = self.branch_name
        main_marker = " (main)" if self.is_main else ""
        return f"{label} @ {self.path}{main_marker}"


@dataclass(frozen=True)
class WorktreeOptions:
    """Options controlling how a worktree is created."""

    track_remote: bool = False
    base_branch: str = ""  # Only used when the branch must be created


@dataclass(frozen=True)
class WorktreeRequest:
    """A single worktree creation request."""

    branch_name: str
    target_path: str = ""
    base_branch: str = ""
    track_remote: bool = False

    @property
    def options(self) -> WorktreeOptions:
        return WorktreeOptions(track_remote=self.track_remote, base_branch=self.base_branch)


@dataclass(frozen=True)
class WorktreeResult:
    """Outcome of a successful worktree creation."""

    path: str
    branch_name: str
    was_created: bool  # Branch did not exist before
    tracking_branch: Optional[str] = None


@dataclass(frozen=True)
class ConflictRecord:
    """Which other worktree currently holds a branch."""

    branch_name: str
    conflicting_worktree_path: str


class OperationPhase(Enum):
    """Phases of a single worktree creation attempt."""

    VALIDATING = "validating"
    PREPARING_DIRECTORIES = "preparing_directories"
    CREATING = "creating"
    CONFLICT_DETECTED = "conflict_detected"
    RESOLVING = "resolving"
    RETRYING = "retrying"
    CONFIGURING_TRACKING = "configuring_tracking"
    DONE = "done"
    FAILED = "failed"


@dataclass
class OperationState:
    """Transient state for one creation attempt, owned by the orchestrator."""

    branch_name: str
    path: str
    options: WorktreeOptions
    progress: Optional[Callable[[str], None]] = None
    phase: OperationPhase = OperationPhase.VALIDATING
    # Directories this attempt created, parent-to-child
    created_dirs: List[str] = field(default_factory=list)
    path_preexisted: bool = False
    branch_existed: bool = False

    def report(self, message: str) -> None:
        if self.progress is not None:
            self.progress(message)
