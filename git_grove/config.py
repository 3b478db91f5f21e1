"""Configuration handling for git-grove"""

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, List, Optional

from git_grove.exceptions import ValidationError
from git_grove.logging_config import get_logger

logger = get_logger(__name__)

CONFIG_FILE_NAME = ".grove.json"
COPY_CONFLICT_STRATEGIES = ["prompt", "skip", "overwrite", "backup"]


@dataclass
class Config:
    """Configuration for git-grove with validation."""

    # Worktree placement
    worktree_base_path: Optional[str] = None  # None = repository root
    max_collision_attempts: int = 999
    # 4096 bytes works across ext4, APFS and NTFS
    max_path_length: int = 4096
    common_collision_numbers: List[int] = field(default_factory=lambda: [1, 2, 3, 4, 5])

    # Remote tracking
    default_remote: str = "origin"
    auto_track_remote: bool = False

    # Post-creation file copying
    copy_patterns: List[str] = field(default_factory=list)
    copy_on_conflict: str = "skip"  # prompt, skip, overwrite, backup

    # Retry for network-class operations
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0
    retry_jitter: bool = True

    # GitHub integration
    github_token: Optional[str] = None

    # Execution modes
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_collision_settings()
        self._validate_max_path_length()
        self._validate_default_remote()
        self._validate_copy_on_conflict()
        self._validate_retry_settings()

    def _validate_collision_settings(self):
        """Validate collision search bounds."""
        if self.max_collision_attempts <= 0:
            raise ValueError(
                f"max_collision_attempts must be positive, got {self.max_collision_attempts}"
            )
        if not isinstance(self.common_collision_numbers, list):
            raise ValueError("common_collision_numbers must be a list")
        if any(n <= 0 for n in self.common_collision_numbers):
            raise ValueError("common_collision_numbers must contain positive numbers")
        if self.common_collision_numbers != sorted(self.common_collision_numbers):
            raise ValueError("common_collision_numbers must be in ascending order")
        if self.common_collision_numbers and self.common_collision_numbers[-1] > self.max_collision_attempts:
            raise ValueError(
                f"common_collision_numbers cannot exceed max_collision_attempts "
                f"({self.common_collision_numbers[-1]} > {self.max_collision_attempts})"
            )

    def _validate_max_path_length(self):
        if self.max_path_length <= 0:
            raise ValueError(f"max_path_length must be positive, got {self.max_path_length}")

    def _validate_default_remote(self):
        """Validate default_remote is not empty."""
        if not self.default_remote or not self.default_remote.strip():
            raise ValueError("default_remote cannot be empty")
        self.default_remote = self.default_remote.strip()

    def _validate_copy_on_conflict(self):
        """Validate copy_on_conflict is one of allowed values."""
        if self.copy_on_conflict not in COPY_CONFLICT_STRATEGIES:
            raise ValueError(
                f"copy_on_conflict must be one of {COPY_CONFLICT_STRATEGIES}, "
                f"got '{self.copy_on_conflict}'"
            )

    def _validate_retry_settings(self):
        if self.retry_max_attempts <= 0:
            raise ValueError(f"retry_max_attempts must be positive, got {self.retry_max_attempts}")
        if self.retry_base_delay < 0 or self.retry_max_delay < 0:
            raise ValueError("retry delays cannot be negative")
        if self.retry_max_delay < self.retry_base_delay:
            raise ValueError("retry_max_delay must be greater than or equal to retry_base_delay")

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)


def default_config_paths(repo_path: Optional[str], home_dir: str) -> List[Path]:
    """Config file locations, most specific first."""
    paths = []
    if repo_path:
        paths.append(Path(repo_path) / CONFIG_FILE_NAME)
    paths.append(Path(home_dir) / ".config" / "git-grove" / "config.json")
    return paths


def load_config(
    config_path: Optional[str] = None,
    repo_path: Optional[str] = None,
    home_dir: Optional[str] = None,
    **overrides: Any,
) -> Config:
    """Load configuration from a JSON file and apply overrides.

    Args:
        config_path: Explicit config file; must exist when given
        repo_path: Repository root searched for .grove.json
        home_dir: Home directory used for the user-level config file
        **overrides: Values that take precedence over the file (None values are ignored)

    Returns:
        Validated Config

    Raises:
        ValidationError: If the file is unreadable, malformed or holds invalid values
    """
    home_dir = home_dir or os.path.expanduser("~")

    if config_path:
        candidates = [Path(config_path)]
        if not candidates[0].is_file():
            raise ValidationError(f"config file not found: {config_path}", "config_load")
    else:
        candidates = [p for p in default_config_paths(repo_path, home_dir) if p.is_file()]

    data: dict = {}
    if candidates:
        source = candidates[0]
        try:
            with open(source, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"invalid JSON in {source}: {e}", "config_load") from e
        except OSError as e:
            raise ValidationError(f"cannot read {source}: {e}", "config_load") from e
        if not isinstance(data, dict):
            raise ValidationError(f"config file {source} must contain a JSON object", "config_load")
        logger.debug(f"Loaded configuration from {source}")

    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return Config.from_dict(data)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"invalid configuration: {e}", "config_load") from e
