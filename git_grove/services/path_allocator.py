"""Collision-free worktree path allocation."""

import errno
import os
import uuid
from typing import List, Optional

from git_grove.config import Config
from git_grove.exceptions import (
    FileSystemError,
    PermissionDeniedError,
    SecurityError,
    ValidationError,
)
from git_grove.logging_config import get_logger
from git_grove.services.git.commander import GitCommander
from git_grove.utils.naming import branch_to_directory_name, is_valid_directory_name

logger = get_logger(__name__)

WRITE_PROBE_PREFIX = ".grove_write_test"


class PathAllocator:
    """Derives and atomically reserves a directory for a new worktree.

    Every candidate is reserved with an exclusive ``mkdir``; an existing
    directory is a collision, never a check-then-create race.
    """

    def __init__(
        self,
        config: Config,
        home_dir: str,
        commander: Optional[GitCommander] = None,
        cwd: Optional[str] = None,
    ):
        """Initialize the allocator.

        Args:
            config: Collision limits, path length limit and workspace root
            home_dir: Home directory used to expand '~' in configured paths
            commander: Used to locate the repository root when no workspace root is configured
            cwd: Directory relative base paths are resolved against (defaults to os.getcwd())
        """
        self.config = config
        self.home_dir = home_dir
        self.commander = commander
        self.cwd = cwd

    def generate_path(self, branch_name: str, base_path: str = "") -> str:
        """Reserve a fresh, empty directory for branch_name under base_path.

        Returns:
            Absolute path of the created directory

        Raises:
            ValidationError: Empty branch name
            SecurityError: Traversal, NUL byte or over-long path
            PermissionDeniedError: Nearest existing ancestor is not writable
            FileSystemError: Collision space exhausted or other IO failure
        """
        if not branch_name or not branch_name.strip():
            raise ValidationError("branch name cannot be empty", "path_generation")

        base = self._absolute(base_path or self.default_base_path())

        dir_name = branch_to_directory_name(branch_name.strip())
        if not is_valid_directory_name(dir_name):
            raise ValidationError(
                f"cannot derive a valid directory name from branch '{branch_name}'",
                "directory_name_generation",
                branch=branch_name,
            )

        target = os.path.join(base, dir_name)
        self.validate_path(target)
        self._ensure_writable_ancestor(target)

        created_parents = self._create_parents(os.path.dirname(target))
        try:
            final_path = self._resolve_collisions(target)
        except Exception:
            self._remove_dirs(created_parents[::-1])
            raise

        try:
            # Suffixes can push the path over the length limit
            self.validate_path(final_path)
        except SecurityError:
            self._remove_dirs([final_path] + created_parents[::-1])
            raise

        logger.debug(f"Allocated worktree path {final_path} for branch {branch_name}")
        return final_path

    def resolve_user_path(self, user_path: str) -> str:
        """Resolve a user-provided path; relative paths are anchored at the base path."""
        if not user_path or not user_path.strip():
            raise ValidationError("user path cannot be empty", "path_resolution")

        expanded = self._expand_home(user_path.strip())
        if os.path.isabs(expanded):
            return expanded
        return os.path.join(self._absolute(self.default_base_path()), expanded)

    def default_base_path(self) -> str:
        """Configured workspace root, else the repository root, else the working directory."""
        if self.config.worktree_base_path:
            return self._expand_home(self.config.worktree_base_path)

        root = self._repository_root()
        if root:
            return root
        return self.cwd or os.getcwd()

    def _repository_root(self) -> Optional[str]:
        """Where worktrees live for this repository.

        For a bare layout (``project/.bare``) this is the directory holding ``.bare``.
        """
        if self.commander is None:
            return None

        result = self.commander.run_quiet("rev-parse", "--git-dir")
        if not result.ok:
            return None
        git_dir = result.stdout.strip()
        if not os.path.isabs(git_dir):
            git_dir = os.path.join(self.commander.repo_path, git_dir)

        marker = os.sep + ".bare"
        idx = git_dir.find(marker)
        if idx != -1:
            return git_dir[:idx] or os.sep

        result = self.commander.run_quiet("rev-parse", "--show-toplevel")
        if result.ok and result.stdout.strip():
            return result.stdout.strip()
        return None

    def _expand_home(self, path: str) -> str:
        if path == "~":
            return self.home_dir
        if path.startswith("~/") or path.startswith("~" + os.sep):
            return os.path.join(self.home_dir, path[2:])
        return path

    def _absolute(self, path: str) -> str:
        # No normpath here: validate_path must still see any ".." segments
        if os.path.isabs(path):
            return path
        return os.path.join(self.cwd or os.getcwd(), path)

    def validate_path(self, path: str) -> None:
        """Security checks for a candidate path.

        Raises:
            SecurityError: If the path is relative, contains '..' segments or NUL
                bytes, collapses suspiciously when normalized, or is too long
        """
        if "\x00" in path:
            raise SecurityError("path contains null bytes", path=path)

        if not os.path.isabs(path):
            raise SecurityError("path must be absolute", path=path)

        segments = path.replace("\\", "/").split("/")
        if ".." in segments:
            raise SecurityError("path contains traversal elements", path=path)

        clean_path = os.path.normpath(path)
        if len(clean_path) < len(path) / 2:
            raise SecurityError(
                "path contains suspicious traversal patterns", path=path, clean_path=clean_path
            )

        if len(path) > self.config.max_path_length:
            raise SecurityError(
                "path exceeds maximum length",
                path=path,
                length=len(path),
                max_length=self.config.max_path_length,
            )

    def _ensure_writable_ancestor(self, path: str) -> None:
        """Probe the nearest existing ancestor by creating and removing a file."""
        current = os.path.dirname(path)
        while not os.path.exists(current):
            parent = os.path.dirname(current)
            if parent == current:
                raise PermissionDeniedError(path, "no existing ancestor directory found")
            current = parent

        if not os.path.isdir(current):
            raise FileSystemError(
                f"ancestor {current} is not a directory", "parent_directory_validation", path=current
            )

        probe = os.path.join(current, f"{WRITE_PROBE_PREFIX}_{os.getpid()}_{uuid.uuid4().hex}")
        try:
            fd = os.open(probe, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
        except PermissionError as e:
            raise PermissionDeniedError(current) from e
        except OSError as e:
            if e.errno in (errno.EACCES, errno.EPERM, errno.EROFS):
                raise PermissionDeniedError(current) from e
            raise FileSystemError(
                f"cannot write to directory {current}: {e}", "parent_directory_permissions", path=current
            ) from e

        os.close(fd)
        try:
            os.remove(probe)
        except OSError as e:
            logger.debug(f"Failed to remove write probe {probe}: {e}")

    def _create_parents(self, directory: str) -> List[str]:
        """Create missing parent directories; returns the ones created, parent-to-child."""
        missing = []
        current = directory
        while not os.path.exists(current):
            missing.insert(0, current)
            parent = os.path.dirname(current)
            if parent == current:
                break
            current = parent

        created = []
        for d in missing:
            try:
                os.mkdir(d, 0o755)
            except FileExistsError:
                # Another process created it first
                continue
            except OSError as e:
                self._remove_dirs(created[::-1])
                raise self._mkdir_error(d, e) from e
            created.append(d)
        return created

    def _resolve_collisions(self, target: str) -> str:
        """Reserve target, or the first free '<target>-N'."""
        if self._try_reserve(target):
            return target

        common = self.config.common_collision_numbers
        for number in common:
            candidate = f"{target}-{number}"
            if self._try_reserve(candidate):
                return candidate

        start = common[-1] + 1 if common else 1
        for number in range(start, self.config.max_collision_attempts + 1):
            candidate = f"{target}-{number}"
            if self._try_reserve(candidate):
                return candidate

        raise FileSystemError(
            f"unable to find unique path after {self.config.max_collision_attempts} attempts",
            "collision_resolution",
            base_path=target,
            attempts=self.config.max_collision_attempts,
        )

    def _try_reserve(self, path: str) -> bool:
        """Atomically create path; False when it already exists."""
        try:
            os.mkdir(path, 0o755)
        except FileExistsError:
            logger.debug(f"Path collision at {path}")
            return False
        except OSError as e:
            raise self._mkdir_error(path, e) from e
        return True

    @staticmethod
    def _mkdir_error(path: str, error: OSError):
        if isinstance(error, PermissionError) or error.errno in (errno.EACCES, errno.EPERM, errno.EROFS):
            return PermissionDeniedError(path)
        return FileSystemError(f"failed to create directory {path}: {error}", "atomic_path_creation", path=path)

    @staticmethod
    def _remove_dirs(dirs: List[str]) -> None:
        """Remove directories child-first; failures are logged and ignored."""
        for d in dirs:
            try:
                os.rmdir(d)
            except OSError as e:
                logger.debug(f"Could not remove directory {d}: {e}")
