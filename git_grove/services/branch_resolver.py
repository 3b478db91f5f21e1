"""Turns raw user input (branch, remote/branch or URL) into a concrete branch."""

import os
from typing import Dict, List, Optional

import git
from github import Auth, Github, GithubException

from git_grove.config import Config
from git_grove.exceptions import (
    BranchNotFoundError,
    GitOperationError,
    NetworkError,
    RemoteNotFoundError,
    ValidationError,
)
from git_grove.logging_config import get_logger
from git_grove.models.branch import BranchInfo, InputInfo, InputType, URLBranchInfo
from git_grove.services.git.commander import GitCommander, describe_git_error
from git_grove.utils.naming import is_url, validate_branch_name
from git_grove.utils.retry import RetryConfig, execute_with_retry
from git_grove.utils.urls import PULL_REFSPECS, parse_platform_url, repository_slug

logger = get_logger(__name__)

# Lower-cased stderr fragments that mark a transient transport failure
NETWORK_ERROR_MARKERS = (
    "could not resolve host",
    "timed out",
    "connection refused",
    "connection reset",
    "temporary failure in name resolution",
    "the remote end hung up unexpectedly",
    "early eof",
)


def is_network_failure(stderr: str) -> bool:
    text = (stderr or "").lower()
    return any(marker in text for marker in NETWORK_ERROR_MARKERS)


class BranchResolver:
    """Resolves branch references against the local repository and its remotes."""

    def __init__(self, commander: GitCommander, config: Optional[Config] = None):
        self.commander = commander
        self.config = config or Config()
        self.retry_config = RetryConfig.from_config(self.config)
        self.github_token = self.config.github_token or os.environ.get("GITHUB_TOKEN")

    def classify_input(self, raw: str) -> InputInfo:
        """Classify raw input as a URL, a remote/branch reference or a plain branch."""
        raw = (raw or "").strip()
        if is_url(raw):
            return InputInfo(type=InputType.URL, original=raw, name="")

        if "/" in raw and not raw.startswith("/") and not raw.endswith("/"):
            remote, branch = raw.split("/", 1)
            if self.remote_exists(remote):
                return InputInfo(
                    type=InputType.REMOTE_BRANCH, original=raw, name=branch, remote_name=remote
                )

        return InputInfo(type=InputType.BRANCH, original=raw, name=raw)

    def resolve_branch(self, name: str, base: str = "", create_if_missing: bool = True) -> BranchInfo:
        """Resolve a plain branch name.

        Returns:
            BranchInfo with exists=True for a local branch, is_remote=True for a
            branch found only on a remote, or exists=False for a branch to create

        Raises:
            ValidationError: If the name violates git's ref-name rules
            BranchNotFoundError: If the branch is missing and creation is not allowed
        """
        validate_branch_name(name)
        logger.debug(f"Resolving branch {name} (base={base or 'HEAD'}, create={create_if_missing})")

        if self.local_branch_exists(name):
            logger.debug(f"Branch {name} exists locally")
            return BranchInfo(name=name, exists=True)

        remote_info = self._find_remote_branch(name)
        if remote_info:
            logger.debug(f"Branch {name} exists on remote {remote_info.remote_name}")
            return remote_info

        if not create_if_missing:
            raise BranchNotFoundError(name)

        logger.debug(f"Branch {name} will be created during worktree creation")
        return BranchInfo(name=name, exists=False)

    def resolve_remote_branch(self, remote_branch: str) -> BranchInfo:
        """Resolve 'remote/branch', fetching the remote first.

        Raises:
            ValidationError: If the reference is not of the form remote/branch
            RemoteNotFoundError: If the remote is not configured
            BranchNotFoundError: If the branch does not exist on the remote
        """
        if "/" not in remote_branch:
            raise ValidationError(
                f"invalid remote branch format: {remote_branch}",
                "remote_branch_parsing",
                remote_branch=remote_branch,
                expected="remote/branch",
            )
        remote, branch = remote_branch.split("/", 1)
        validate_branch_name(branch)

        if not self.remote_exists(remote):
            raise RemoteNotFoundError(remote)

        try:
            self.fetch(remote)
        except GitOperationError as e:
            # Remote-tracking refs may be stale but can still be used
            logger.debug(f"Failed to fetch {remote}, branch information may be stale: {e}")

        if not self.remote_branch_exists(remote, branch):
            raise BranchNotFoundError(branch, remote)

        return BranchInfo(
            name=branch,
            exists=self.local_branch_exists(branch),
            is_remote=True,
            tracking_branch=f"{remote}/{branch}",
            remote_name=remote,
        )

    def resolve_url(self, url: str) -> URLBranchInfo:
        """Parse a platform URL and make the branch it references available locally.

        Raises:
            ValidationError: For an unsupported URL
            RemoteNotFoundError: For a pull/merge request whose repository has no remote here
        """
        info = parse_platform_url(url)
        remote = self.find_remote_for_url(info.repo_url)
        info.requires_remote = remote is None
        logger.debug(
            f"Parsed URL {url}: platform={info.platform} branch={info.branch_name} pr={info.pr_number}"
        )

        if info.pr_number:
            if remote is None:
                raise RemoteNotFoundError(
                    info.repo_url,
                    f"no remote configured for {info.repo_url}; add it with 'git remote add'",
                )
            info.branch_name = self._checkout_pull_request(info, remote)
        elif info.branch_name and remote is not None:
            try:
                self.fetch(remote)
            except GitOperationError as e:
                logger.debug(f"Failed to fetch {remote}, branch information may be stale: {e}")

        return info

    def _checkout_pull_request(self, info: URLBranchInfo, remote: str) -> str:
        """Return the local branch for a pull/merge request, fetching it as needed."""
        head_ref = self._github_head_ref(info)
        if head_ref:
            try:
                self.fetch(remote)
            except GitOperationError as e:
                logger.debug(f"Failed to fetch {remote}: {e}")
            if self.remote_branch_exists(remote, head_ref):
                return head_ref

        refspec = PULL_REFSPECS.get(info.platform)
        if refspec is None:
            raise ValidationError(
                f"checking out pull requests is not supported for {info.platform}",
                "url_resolution",
                platform=info.platform,
            )

        local_branch = f"pr-{info.pr_number}"
        source = refspec.format(number=info.pr_number)
        if self.local_branch_exists(local_branch):
            logger.debug(f"Updating existing branch {local_branch} from {source}")
        self.fetch(remote, f"{source}:{local_branch}")
        return local_branch

    def _github_head_ref(self, info: URLBranchInfo) -> Optional[str]:
        """Head branch of a same-repository GitHub PR, or None when unknown or from a fork."""
        if info.platform != "github" or not self.github_token:
            return None

        slug = repository_slug(info.repo_url)

        def lookup():
            try:
                gh = Github(auth=Auth.Token(self.github_token))
                return gh.get_repo(slug).get_pull(int(info.pr_number))
            except GithubException as e:
                if e.status is not None and e.status >= 500:
                    raise NetworkError("github pull lookup", message=str(e)) from e
                raise GitOperationError("github pull lookup", message=str(e)) from e

        try:
            pull = execute_with_retry(lookup, self.retry_config)
        except GitOperationError as e:
            logger.debug(f"[GitHub] Could not look up PR #{info.pr_number}: {e}")
            return None

        head_repo = pull.head.repo
        if head_repo is None or head_repo.full_name.lower() != (slug or "").lower():
            logger.debug(f"[GitHub] PR #{info.pr_number} comes from a fork, using pull ref")
            return None
        return pull.head.ref

    def fetch(self, remote: str, *refspecs: str) -> None:
        """Fetch from a remote, retrying transient network failures.

        Raises:
            NetworkError: If retries are exhausted on a transient failure
            GitOperationError: For any other fetch failure
        """

        def attempt():
            try:
                self.commander.run("fetch", remote, *refspecs)
            except git.exc.GitCommandError as e:
                error_class = NetworkError if is_network_failure(str(e.stderr)) else GitOperationError
                raise error_class(
                    f"fetch {remote}", message=describe_git_error(e), stderr=str(e.stderr)
                ) from e

        execute_with_retry(attempt, self.retry_config)

    def local_branch_exists(self, name: str) -> bool:
        return self.commander.run_quiet("show-ref", "--verify", "--quiet", f"refs/heads/{name}").ok

    def remote_branch_exists(self, remote: str, branch: str) -> bool:
        result = self.commander.run_quiet("branch", "-r", "--list", f"{remote}/{branch}")
        return result.ok and bool(result.stdout.strip())

    def _find_remote_branch(self, name: str) -> Optional[BranchInfo]:
        result = self.commander.run_quiet("branch", "-r", "--list", f"*/{name}")
        if not result.ok:
            return None

        for line in result.stdout.splitlines():
            line = line.strip()
            if not line or " -> " in line:
                continue
            remote, _, branch = line.partition("/")
            if branch == name:
                return BranchInfo(
                    name=name, exists=False, is_remote=True, tracking_branch=line, remote_name=remote
                )
        return None

    def list_remotes(self) -> List[str]:
        result = self.commander.run_quiet("remote")
        if not result.ok:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def remote_exists(self, name: str) -> bool:
        return name in self.list_remotes()

    def remote_urls(self) -> Dict[str, str]:
        """Map of remote name to fetch URL."""
        result = self.commander.run_quiet("remote", "-v")
        urls: Dict[str, str] = {}
        if not result.ok:
            return urls
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[0] not in urls:
                urls[parts[0]] = parts[1]
        return urls

    def find_remote_for_url(self, repo_url: str) -> Optional[str]:
        """Name of the remote pointing at repo_url (https and ssh forms compare equal)."""
        wanted = (repository_slug(repo_url) or "").lower()
        if not wanted:
            return None
        for name, url in self.remote_urls().items():
            if (repository_slug(url) or "").lower() == wanted:
                return name
        return None
