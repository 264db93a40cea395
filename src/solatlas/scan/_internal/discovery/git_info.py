"""Repository metadata read through pygit2."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pygit2
import structlog

logger = structlog.get_logger()

DETACHED_BRANCH = "(detached)"


@dataclass(frozen=True, slots=True)
class GitInfo:
    url: str | None = None
    provider: str | None = None
    current_branch: str | None = None
    default_branch: str | None = None
    head_sha: str | None = None
    first_commit_at: float | None = None
    last_commit_at: float | None = None


def combine_url(root: str | None, repo_name: str) -> str:
    if not root or not root.strip():
        return repo_name
    if not root.endswith("/"):
        root += "/"
    return root + repo_name


def infer_provider(url: str | None) -> str | None:
    if not url or not url.strip():
        return None
    return "GitHub" if "github.com" in url.lower() else "Unknown"


def _fallback(folder_name: str, default_remote_root_url: str | None) -> GitInfo:
    url = combine_url(default_remote_root_url, folder_name)
    return GitInfo(url=url, provider=infer_provider(url))


def _origin_url(repo: pygit2.Repository) -> str | None:
    if "origin" not in [r.name for r in repo.remotes]:
        return None
    return repo.remotes["origin"].url


def _default_branch(repo: pygit2.Repository) -> str | None:
    """Branch that ``refs/remotes/origin/HEAD`` points at, if recorded."""
    ref = repo.references.get("refs/remotes/origin/HEAD")
    if ref is None:
        return None
    target = ref.target
    if not isinstance(target, str):
        return None
    parts = [p for p in target.split("/") if p]
    return parts[-1] if parts else None


def _first_commit_time(repo: pygit2.Repository, head: pygit2.Commit) -> float | None:
    oldest: pygit2.Commit | None = None
    for commit in repo.walk(head.id, pygit2.GIT_SORT_TIME | pygit2.GIT_SORT_REVERSE):
        oldest = commit
        break
    return float(oldest.author.time) if oldest is not None else None


def read_git_info(
    repo_dir: Path,
    folder_name: str,
    default_remote_root_url: str | None = None,
) -> GitInfo:
    """Collect remote, branch and commit facts; non-git folders get URL only.

    A repository whose refs or objects cannot be read keeps its URL and
    loses the branch and commit facts.
    """
    if not (repo_dir / ".git").exists():
        return _fallback(folder_name, default_remote_root_url)

    try:
        repo = pygit2.Repository(str(repo_dir))
        url = _origin_url(repo) or combine_url(default_remote_root_url, folder_name)
    except (pygit2.GitError, KeyError, ValueError) as e:
        logger.warning("git_open_failed", repo=folder_name, error=str(e))
        return _fallback(folder_name, default_remote_root_url)

    current_branch: str | None = None
    head_sha: str | None = None
    first_at: float | None = None
    last_at: float | None = None
    try:
        if not repo.head_is_unborn:
            current_branch = DETACHED_BRANCH if repo.head_is_detached else repo.head.shorthand
            head = repo.head.peel(pygit2.Commit)
            head_sha = str(head.id)
            last_at = float(head.author.time)
            first_at = _first_commit_time(repo, head)
        default_branch = _default_branch(repo) or current_branch
    except (pygit2.GitError, KeyError, ValueError) as e:
        logger.warning("git_read_failed", repo=folder_name, error=str(e))
        return GitInfo(url=url, provider=infer_provider(url))

    return GitInfo(
        url=url,
        provider=infer_provider(url),
        current_branch=current_branch,
        default_branch=default_branch,
        head_sha=head_sha,
        first_commit_at=first_at,
        last_commit_at=last_at,
    )
