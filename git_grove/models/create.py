"""Models for the end-to-end create workflow."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

ProgressCallback = Callable[[str], None]


class CopyStrategy(Enum):
    """How to handle files that already exist in the target worktree."""

    PROMPT = "prompt"
    SKIP = "skip"
    OVERWRITE = "overwrite"
    BACKUP = "backup"


@dataclass
class CreateOptions:
    """Options for a single create invocation."""

    branch_name: str  # Branch, remote/branch or platform URL
    worktree_path: str = ""
    base_branch: str = ""
    track_remote: bool = False
    copy_files: bool = False
    copy_patterns: List[str] = field(default_factory=list)  # Overrides configured patterns
    copy_env: bool = False
    progress: Optional[ProgressCallback] = None


@dataclass
class CreateResult:
    """Summary of a created worktree."""

    worktree_path: str
    branch_name: str
    was_created: bool  # Branch was newly created vs. existing
    base_branch: str = ""
    tracking_branch: Optional[str] = None
    copied_files: int = 0
