"""Utility functions for git-grove.

This package provides utility modules:
- naming: branch-name validation and directory-name conversion
- retry: exponential backoff for transient network failures
- urls: hosting-platform URL parsing
"""

from .naming import branch_to_directory_name, is_url, is_valid_directory_name, validate_branch_name
from .retry import RetryConfig, execute_with_retry
from .urls import parse_platform_url, repository_slug

__all__ = [
    # Naming
    "branch_to_directory_name",
    "is_url",
    "is_valid_directory_name",
    "validate_branch_name",
    # Retry
    "RetryConfig",
    "execute_with_retry",
    # URLs
    "parse_platform_url",
    "repository_slug",
]
