"""Hosting-platform URL parsing."""

import re
from typing import Optional
from urllib.parse import parse_qs, unquote, urlparse

from git_grove.exceptions import ValidationError
from git_grove.models.branch import URLBranchInfo

PLATFORM_HOSTS = {
    "github.com": "github",
    "gitlab.com": "gitlab",
    "bitbucket.org": "bitbucket",
    "codeberg.org": "codeberg",
    "gitea.com": "gitea",
    "dev.azure.com": "azure-devops",
}

# Platforms whose pull/merge request heads can be fetched directly from the remote
PULL_REFSPECS = {
    "github": "pull/{number}/head",
    "codeberg": "pull/{number}/head",
    "gitea": "pull/{number}/head",
    "gitlab": "merge-requests/{number}/head",
}

_SSH_URL = re.compile(r"^git@([^:]+):(.+)$")


def _repo_url(host: str, owner: str, repo: str) -> str:
    if repo.endswith(".git"):
        repo = repo[:-4]
    return f"https://{host}/{owner}/{repo}.git"


def _parse_forge(host: str, platform: str, parts: list) -> Optional[URLBranchInfo]:
    """github/gitlab/bitbucket/codeberg/gitea style: /owner/repo[/...]"""
    if len(parts) < 2:
        return None
    info = URLBranchInfo(repo_url=_repo_url(host, parts[0], parts[1]), platform=platform)
    rest = parts[2:]
    if rest and rest[0] == "-":  # GitLab puts '/-/' before tree and merge_requests
        rest = rest[1:]
    if not rest:
        return info

    kind, tail = rest[0], rest[1:]
    if platform in ("codeberg", "gitea") and kind == "src" and len(tail) >= 2 and tail[0] == "branch":
        info.branch_name = "/".join(tail[1:])
    elif kind in ("tree", "src") and tail:
        info.branch_name = "/".join(tail)
    elif kind in ("pull", "pulls", "pull-requests", "merge_requests") and tail and tail[0].isdigit():
        info.pr_number = tail[0]
    return info


def _parse_azure(parts: list, query: str) -> Optional[URLBranchInfo]:
    """dev.azure.com/org/project/_git/repo[?version=GBbranch | /pullrequest/N]"""
    if len(parts) < 4 or parts[2] != "_git":
        return None
    info = URLBranchInfo(
        repo_url=f"https://dev.azure.com/{'/'.join(parts[:4])}", platform="azure-devops"
    )
    version = parse_qs(query).get("version", [""])[0]
    if version.startswith("GB"):
        info.branch_name = version[2:]
    if len(parts) >= 6 and parts[4] == "pullrequest" and parts[5].isdigit():
        info.pr_number = parts[5]
    return info


def parse_platform_url(url: str) -> URLBranchInfo:
    """Parse a repository, branch or pull/merge request URL.

    Raises:
        ValidationError: For an empty or unrecognized URL
    """
    url = (url or "").strip()
    if not url:
        raise ValidationError("empty URL provided", "url_parsing")

    ssh = _SSH_URL.match(url)
    if ssh:
        return URLBranchInfo(repo_url=url, platform=PLATFORM_HOSTS.get(ssh.group(1), "git"))

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"URL format not recognized: {url}", "url_parsing", url=url)

    host = parsed.netloc.lower()
    parts = [unquote(p) for p in parsed.path.split("/") if p]
    platform = PLATFORM_HOSTS.get(host)

    info = None
    if platform == "azure-devops":
        info = _parse_azure(parts, parsed.query)
    elif platform:
        info = _parse_forge(host, platform, parts)
    elif parsed.path.endswith(".git"):
        info = URLBranchInfo(repo_url=url, platform="git")

    if info is None:
        raise ValidationError(f"URL format not recognized: {url}", "url_parsing", url=url)
    return info


def repository_slug(repo_url: str) -> Optional[str]:
    """'owner/repo' for an https or ssh repository URL, without the .git suffix."""
    ssh = _SSH_URL.match(repo_url)
    path = ssh.group(2) if ssh else urlparse(repo_url).path
    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    return path or None
