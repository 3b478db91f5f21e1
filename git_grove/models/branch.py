"""Branch resolution models"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass
class BranchInfo:
    """A branch reference resolved to a concrete branch name."""
    name: str
    exists: bool  # Exists locally
    is_remote: bool = False  # Exists only on a remote, requires checkout
    tracking_branch: Optional[str] = None  # e.g. origin/feature
    remote_name: Optional[str] = None


@dataclass
class URLBranchInfo:
    """What could be learned from a hosting platform URL."""
    repo_url: str
    platform: str  # github, gitlab, bitbucket, ...
    branch_name: Optional[str] = None
    pr_number: Optional[str] = None  # For PR/MR URLs
    requires_remote: bool = False  # Remote must be configured before checkout


class InputType(Enum):
    """Kind of raw argument given on the command line."""
    BRANCH = "branch"
    REMOTE_BRANCH = "remote_branch"
    URL = "url"


@dataclass
class InputInfo:
    """A classified raw argument."""
    type: InputType
    original: str
    name: str  # Branch name without remote prefix
    remote_name: Optional[str] = None
