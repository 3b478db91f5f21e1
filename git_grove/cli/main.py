"""Main entry point for git-grove"""

import os
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from git_grove.cli.args import parse_args
from git_grove.cli.progress import ProgressRenderer, display_result
from git_grove.config import load_config
from git_grove.exceptions import (
    BranchNotFoundError,
    ConflictError,
    FileSystemError,
    GitNotFoundError,
    GroveError,
    NetworkError,
    PermissionDeniedError,
    RemoteNotFoundError,
    SecurityError,
    ValidationError,
)
from git_grove.logging_config import get_logger, setup_logging
from git_grove.models.create import CreateOptions
from git_grove.services import (
    BranchResolver,
    CreateService,
    FileManager,
    PathAllocator,
    WorktreeOrchestrator,
)
from git_grove.services.git import GitCommander, WorktreeService

console = Console()
logger = get_logger(__name__)

EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def error_hint(error: GroveError) -> Optional[str]:
    """Remediation suggestion shown below the error, if any."""
    if isinstance(error, ConflictError):
        if error.reason == ConflictError.REASON_UNCOMMITTED_CHANGES:
            return f"Commit or stash the changes in {error.worktree_path}, then run the command again"
        if error.reason == ConflictError.REASON_MAIN_WORKTREE:
            return "Switch the main worktree to another branch first, or use a different branch name"
        return "Run 'git worktree list' to see which worktree holds the branch"
    if isinstance(error, PermissionDeniedError):
        return "Check directory permissions or set 'worktree_base_path' in the configuration"
    if isinstance(error, SecurityError):
        return "Use an absolute path without '..' segments"
    if isinstance(error, GitNotFoundError):
        return "Install git and make sure it is on your PATH"
    if isinstance(error, RemoteNotFoundError):
        return "Run 'git remote -v' to list configured remotes"
    if isinstance(error, BranchNotFoundError):
        return "Run 'git branch -a' to list available branches"
    if isinstance(error, NetworkError):
        return "Check your network connection and try again"
    if isinstance(error, FileSystemError) and error.operation == "collision_resolution":
        return "Remove unused worktree directories or pass an explicit path"
    return None


def report_error(error: GroveError) -> None:
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    hint = error_hint(error)
    if hint:
        console.print(f"[yellow]Hint: {escape(hint)}[/yellow]")


def find_repository_root(commander: GitCommander) -> str:
    """Top-level directory of the current repository (or cwd in a bare layout).

    Raises:
        ValidationError: If the working directory is not inside a git repository
    """
    if not commander.run_quiet("rev-parse", "--git-dir").ok:
        raise ValidationError("not a git repository (or any of the parent directories)", "repository_lookup")
    toplevel = commander.run_quiet("rev-parse", "--show-toplevel")
    if toplevel.ok and toplevel.stdout.strip():
        return toplevel.stdout.strip()
    return commander.repo_path


def build_create_service(repo_path: str, config, home_dir: str) -> CreateService:
    """Wire up the create workflow for one repository."""
    commander = GitCommander(repo_path)
    worktree_service = WorktreeService(commander)
    return CreateService(
        branch_resolver=BranchResolver(commander, config),
        path_allocator=PathAllocator(config, home_dir, commander=commander, cwd=os.getcwd()),
        orchestrator=WorktreeOrchestrator(
            commander, worktree_service, default_remote=config.default_remote
        ),
        file_manager=FileManager(commander, worktree_service),
        config=config,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    log_file = setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

    progress = ProgressRenderer(console)
    try:
        home_dir = os.path.expanduser("~")
        repo_path = find_repository_root(GitCommander(os.getcwd()))
        config = load_config(
            parsed_args.config,
            repo_path=repo_path,
            home_dir=home_dir,
            verbose=parsed_args.verbose or None,
            debug=parsed_args.debug or None,
        )

        if parsed_args.debug:
            console.print(f"[yellow]Debug mode enabled, logging to {log_file}[/yellow]")
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                if key == "github_token" and value:
                    value = "***"
                console.print(f"  {key}: {value}")

        service = build_create_service(repo_path, config, home_dir)
        options = CreateOptions(
            branch_name=parsed_args.branch.strip(),
            worktree_path=parsed_args.path,
            base_branch=parsed_args.base,
            track_remote=parsed_args.track,
            copy_files=not parsed_args.no_copy,
            copy_patterns=parsed_args.copy_patterns,
            copy_env=parsed_args.copy_env,
            progress=progress,
        )
        result = service.create(options)
        progress.finish(success=True)
        display_result(console, result)
        return 0
    except KeyboardInterrupt:
        progress.finish(success=False)
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return EXIT_INTERRUPTED
    except GroveError as e:
        progress.finish(success=False)
        logger.debug(f"Create failed: {e!r} context={e.context}")
        report_error(e)
        return EXIT_USAGE if isinstance(e, ValidationError) else EXIT_ERROR
    except Exception as e:
        progress.finish(success=False)
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if parsed_args.debug:
            console.print_exception()
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
