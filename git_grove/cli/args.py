"""Command-line argument parsing for git-grove."""

import argparse
from typing import List, Optional

from git_grove.__version__ import __version__


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="git-grove",
        description="Create git worktrees in collision-free directories, "
        "freeing branches held by other clean worktrees",
        epilog="Examples: git-grove feature/login | git-grove origin/fix-123 | "
        "git-grove https://github.com/owner/repo/pull/42",
    )
    parser.add_argument("branch", help="Branch name, remote/branch reference or platform URL")
    parser.add_argument(
        "path",
        nargs="?",
        default="",
        help="Worktree directory (default: derived from the branch name)",
    )
    parser.add_argument(
        "--base", default="", metavar="BRANCH", help="Base branch for a newly created branch"
    )
    parser.add_argument(
        "--track",
        action="store_true",
        help="Set upstream to <remote>/<branch> when it exists on the default remote",
    )
    parser.add_argument(
        "--copy-env",
        action="store_true",
        help="Copy environment files (.env*, *.local.*) from the source worktree",
    )
    parser.add_argument(
        "--copy",
        metavar="PATTERNS",
        help="Comma-separated glob patterns of files to copy from the source worktree",
    )
    parser.add_argument(
        "--no-copy", action="store_true", help="Do not copy any files into the new worktree"
    )
    parser.add_argument("--config", metavar="FILE", help="Path to a JSON configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument("--version", action="version", version=f"git-grove {__version__}")
    return parser


def parse_copy_patterns(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [p.strip() for p in value.split(",") if p.strip()]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.no_copy and (args.copy or args.copy_env):
        parser.error("--no-copy cannot be combined with --copy or --copy-env")
    if args.copy is not None and not parse_copy_patterns(args.copy):
        parser.error("--copy requires at least one pattern")
    if not args.branch.strip():
        parser.error("branch cannot be empty")

    args.copy_patterns = parse_copy_patterns(args.copy)
    return args
