"""Branch-name and directory-name helpers."""

import re

from git_grove.exceptions import ValidationError

# Characters that are unsafe in directory names on at least one common filesystem
_UNSAFE_DIR_CHARS = re.compile(r'[/\\:*?"<>|#\s]')
_MULTI_HYPHEN = re.compile(r"-+")

# Git ref-name rules (see git-check-ref-format)
_INVALID_REF_CHARS = re.compile(r"[~^:?*\[\]\\]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_INVALID_START_END = re.compile(r"^[./]|[./]$")

_RESERVED_DIR_NAMES = {
    "CON", "PRN", "AUX", "NUL",
    *(f"COM{i}" for i in range(1, 10)),
    *(f"LPT{i}" for i in range(1, 10)),
}


def branch_to_directory_name(branch_name: str) -> str:
    """Convert a branch name into a filesystem-safe directory name.

    Examples:
        feature/user/auth -> feature-user-auth
        bugfix/issue#456  -> bugfix-issue-456
        hotfix/v1.2.3     -> hotfix-v1.2.3
    """
    if not branch_name:
        return ""

    dir_name = _UNSAFE_DIR_CHARS.sub("-", branch_name)
    dir_name = _MULTI_HYPHEN.sub("-", dir_name).strip("-")

    return dir_name or "worktree"


def is_valid_directory_name(name: str) -> bool:
    """Whether name is usable as a single directory component everywhere."""
    if not name or _UNSAFE_DIR_CHARS.search(name):
        return False
    if name.startswith((" ", ".")) or name.endswith((" ", ".")):
        return False
    return name.upper() not in _RESERVED_DIR_NAMES


def validate_branch_name(name: str) -> None:
    """Check a branch name against git's ref-name rules.

    Raises:
        ValidationError: Describing the first rule the name violates
    """

    def invalid(reason: str) -> ValidationError:
        return ValidationError(f"invalid branch name '{name}': {reason}", "branch_validation", branch=name)

    if not name or not name.strip():
        raise ValidationError("branch name cannot be empty", "branch_validation")
    if _CONTROL_CHARS.search(name):
        raise invalid("cannot contain control characters")
    if re.search(r"\s", name):
        raise invalid("cannot contain whitespace")
    if name.startswith("-"):
        raise invalid("cannot start with a dash")
    if _INVALID_REF_CHARS.search(name):
        raise invalid("contains invalid characters (~^:?*[]\\)")
    if ".." in name:
        raise invalid("cannot contain consecutive dots (..)")
    if "@{" in name:
        raise invalid("cannot contain '@{'")
    if "//" in name:
        raise invalid("cannot contain consecutive slashes")
    if _INVALID_START_END.search(name):
        raise invalid("cannot start or end with dots or slashes")
    if name in ("HEAD", "@"):
        raise invalid("cannot be 'HEAD' or '@'")
    if name.endswith(".lock"):
        raise invalid("cannot end with '.lock'")


def is_url(text: str) -> bool:
    """Whether a raw argument looks like a repository or platform URL."""
    return text.startswith(("http://", "https://", "git@")) or "://" in text
