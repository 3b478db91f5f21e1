"""Data models for git-grove."""

from .branch import BranchInfo, InputInfo, InputType, URLBranchInfo
from .create import CopyStrategy, CreateOptions, CreateResult, ProgressCallback
from .worktree import (
    ConflictRecord,
    OperationPhase,
    OperationState,
    WorktreeInfo,
    WorktreeOptions,
    WorktreeRequest,
    WorktreeResult,
)

__all__ = [
    "BranchInfo",
    "InputInfo",
    "InputType",
    "URLBranchInfo",
    "CopyStrategy",
    "CreateOptions",
    "CreateResult",
    "ProgressCallback",
    "ConflictRecord",
    "OperationPhase",
    "OperationState",
    "WorktreeInfo",
    "WorktreeOptions",
    "WorktreeRequest",
    "WorktreeResult",
]
