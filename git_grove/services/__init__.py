"""Services for git-grove."""

from .branch_resolver import BranchResolver
from .conflict_resolver import ConflictResolver
from .create_service import CreateService
from .file_manager import FileManager
from .path_allocator import PathAllocator
from .worktree_orchestrator import WorktreeOrchestrator

__all__ = [
    "BranchResolver",
    "ConflictResolver",
    "CreateService",
    "FileManager",
    "PathAllocator",
    "WorktreeOrchestrator",
]
