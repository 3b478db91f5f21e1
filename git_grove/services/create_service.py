"""End-to-end create workflow: resolve, allocate, create, copy."""

import os
from typing import Optional

from git_grove.config import Config
from git_grove.exceptions import GroveError, ValidationError
from git_grove.logging_config import get_logger
from git_grove.models.branch import BranchInfo, InputInfo, InputType
from git_grove.models.create import CopyStrategy, CreateOptions, CreateResult
from git_grove.models.worktree import WorktreeOptions
from git_grove.services.branch_resolver import BranchResolver
from git_grove.services.file_manager import ENV_COPY_PATTERNS, FileManager
from git_grove.services.path_allocator import PathAllocator
from git_grove.services.worktree_orchestrator import WorktreeOrchestrator

logger = get_logger(__name__)


class CreateService:
    """Composes branch resolution, path allocation, worktree creation and file copying."""

    def __init__(
        self,
        branch_resolver: BranchResolver,
        path_allocator: PathAllocator,
        orchestrator: WorktreeOrchestrator,
        file_manager: Optional[FileManager] = None,
        config: Optional[Config] = None,
    ):
        self.branch_resolver = branch_resolver
        self.path_allocator = path_allocator
        self.orchestrator = orchestrator
        self.file_manager = file_manager
        self.config = config or Config()

    def create(self, options: CreateOptions) -> CreateResult:
        """Create a worktree for options.branch_name.

        Raises:
            GroveError: Any typed failure from resolution, allocation or creation
        """
        self._validate_options(options)
        logger.debug(
            f"Starting create for {options.branch_name} "
            f"(path={options.worktree_path or 'auto'}, copy_files={options.copy_files})"
        )

        input_info = self.branch_resolver.classify_input(options.branch_name)
        self._report(options, self._resolution_message(input_info))
        branch_info = self._resolve_branch(input_info, options)

        reserved = False
        if options.worktree_path:
            worktree_path = self.path_allocator.resolve_user_path(options.worktree_path)
        else:
            self._report(options, "Generating worktree path")
            worktree_path = self.path_allocator.generate_path(branch_info.name)
            reserved = True

        base_branch = options.base_branch
        if not base_branch and not branch_info.exists and branch_info.tracking_branch:
            base_branch = branch_info.tracking_branch

        worktree_options = WorktreeOptions(
            track_remote=self._should_track_remote(branch_info, options),
            base_branch=base_branch,
        )

        self._report(options, f"Creating worktree at {worktree_path}")
        try:
            worktree = self.orchestrator.create_worktree(
                branch_info.name, worktree_path, worktree_options, options.progress
            )
        except BaseException:
            if reserved:
                self._release_reservation(worktree_path)
            raise

        result = CreateResult(
            worktree_path=worktree.path,
            branch_name=worktree.branch_name,
            was_created=worktree.was_created,
            base_branch=base_branch,
            tracking_branch=worktree.tracking_branch,
        )

        if options.copy_files or options.copy_env or options.copy_patterns:
            self._report(options, "Copying files to new worktree")
            try:
                result.copied_files = self._copy_files(options, worktree.path)
            except (GroveError, OSError, EOFError) as e:
                # Worktree is already created; copying is best-effort
                logger.warning(f"File copying failed: {e}")

        logger.debug(
            f"Worktree created: branch={result.branch_name} path={result.worktree_path} "
            f"was_created={result.was_created} copied_files={result.copied_files}"
        )
        return result

    @staticmethod
    def _validate_options(options: CreateOptions) -> None:
        if not options.branch_name or not options.branch_name.strip():
            raise ValidationError("branch name cannot be empty", "option_validation")
        if options.worktree_path:
            segments = options.worktree_path.replace("\\", "/").split("/")
            if ".." in segments:
                raise ValidationError(
                    "path cannot contain '..' components", "option_validation", path=options.worktree_path
                )

    @staticmethod
    def _report(options: CreateOptions, message: str) -> None:
        if options.progress is not None:
            options.progress(message)

    @staticmethod
    def _resolution_message(input_info: InputInfo) -> str:
        if input_info.type == InputType.URL:
            return f"Parsing URL: {input_info.original}"
        if input_info.type == InputType.REMOTE_BRANCH:
            return f"Resolving remote branch: {input_info.original}"
        return f"Resolving branch: {input_info.original}"

    def _resolve_branch(self, input_info: InputInfo, options: CreateOptions) -> BranchInfo:
        if input_info.type == InputType.REMOTE_BRANCH:
            return self.branch_resolver.resolve_remote_branch(input_info.original)

        name = input_info.name
        if input_info.type == InputType.URL:
            url_info = self.branch_resolver.resolve_url(input_info.original)
            if not url_info.branch_name:
                raise ValidationError(
                    "URL does not reference a branch or pull request",
                    "url_resolution",
                    url=input_info.original,
                )
            name = url_info.branch_name

        return self.branch_resolver.resolve_branch(name, options.base_branch, create_if_missing=True)

    def _should_track_remote(self, branch_info: BranchInfo, options: CreateOptions) -> bool:
        if branch_info.is_remote:
            return True
        return options.track_remote or self.config.auto_track_remote

    def _release_reservation(self, path: str) -> None:
        """Remove the still-empty directory reserved by the allocator."""
        try:
            os.rmdir(path)
        except OSError as e:
            logger.debug(f"Could not release reserved path {path}: {e}")

    def _copy_files(self, options: CreateOptions, target: str) -> int:
        if self.file_manager is None:
            return 0

        patterns = list(options.copy_patterns)
        if not patterns:
            patterns = list(ENV_COPY_PATTERNS) if options.copy_env else list(self.config.copy_patterns)
        if not patterns:
            return 0

        source = None
        if options.base_branch:
            source = self.file_manager.find_worktree_by_branch(options.base_branch)
        if not source:
            source = self.file_manager.discover_source_worktree()

        return self.file_manager.copy_files(
            source, target, patterns, CopyStrategy(self.config.copy_on_conflict)
        )
