"""GitHub integration through the gh CLI.

Releases, tag references, closed pull requests and PR creation all go
through `gh api`, so authentication is whatever `gh auth` is configured with.
"""

from __future__ import annotations

import json
import re
import subprocess
from datetime import datetime
from typing import Any

from .exceptions import GitHubError
from .models import ChangeRecord, ReleaseInfo
from .retry import RetryPolicy
from .shell import gh, git, info, step

PR_TITLE = "Update dependencies"
PR_BODY = "This PR updates Python dependencies to the latest versions."

# Last two path segments before an optional .git suffix, for
#   https://github.com/owner/repo.git
#   ssh://git@github.com/owner/repo
#   git@github.com:owner/repo.git
_SLUG = re.compile(r"[:/]([^/:]+/[^/]+?)(?:\.git)?/?$")


def extract_repo_slug(remote_url: str) -> str:
    """Normalize an HTTPS or SSH remote URL to "owner/repo".

    Raises:
        GitHubError: If the URL does not end in owner/repo.
    """
    match = _SLUG.search(remote_url.strip())
    if not match:
        raise GitHubError(f"could not parse repository from remote: {remote_url}")
    return match.group(1)


def get_repo_name() -> str:
    """Detect the repository slug, preferring the upstream remote over origin."""
    remote_url = git("remote", "get-url", "upstream", check=False)
    if not remote_url:
        remote_url = git("remote", "get-url", "origin", check=False)
    if not remote_url:
        raise GitHubError("no 'upstream' or 'origin' remote configured")
    return extract_repo_slug(remote_url)


def _api(path: str, *args: str) -> Any:
    """Call `gh api` and decode the JSON response."""
    try:
        output = gh("api", path, *args)
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or "").strip() or f"exit code {exc.returncode}"
        raise GitHubError(f"gh api {path} failed: {detail}") from exc
    except subprocess.TimeoutExpired as exc:
        raise GitHubError(f"gh api {path} timed out after {exc.timeout}s") from exc
    try:
        return json.loads(output) if output else None
    except json.JSONDecodeError as exc:
        raise GitHubError(f"gh api {path} returned invalid JSON: {exc}") from exc


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def fetch_latest_release(repo: str) -> ReleaseInfo:
    """Fetch the tag and publish time of the latest release."""
    data = _api(f"repos/{repo}/releases/latest")
    if not isinstance(data, dict) or not data.get("tag_name"):
        raise GitHubError(f"no latest release found for {repo}")
    return ReleaseInfo(tag=data["tag_name"], published_at=_parse_time(data.get("published_at")))


def fetch_commit_sha(repo: str, tag: str, retry: RetryPolicy | None = None) -> str:
    """Fetch the object SHA a tag points to.

    The tag reference is sometimes not visible right after a release is
    published, so this lookup is retried with backoff.
    """
    retry = retry or RetryPolicy()
    data = retry.call(
        lambda: _api(f"repos/{repo}/git/refs/tags/{tag}"),
        retry_on=(GitHubError,),
        describe=f"Fetching commit SHA for {repo}@{tag}",
    )
    sha = (data or {}).get("object", {}).get("sha", "") if isinstance(data, dict) else ""
    if not sha:
        raise GitHubError(f"empty commit SHA for {repo}@{tag}")
    return sha


def get_latest_release(repo: str, retry: RetryPolicy | None = None) -> ReleaseInfo:
    """Fetch the latest release together with the commit its tag points to."""
    step(f"Fetching latest release of {repo}")
    release = fetch_latest_release(repo)
    release.commit_sha = fetch_commit_sha(repo, release.tag, retry)
    info(f"{release.tag} ({release.commit_sha}) published {release.published_at}")
    return release


def fetch_closed_changes(
    repo: str, since: datetime | None, base: str
) -> list[ChangeRecord]:
    """Fetch pull requests into base that were closed after since.

    Pull requests closed without merging are included with merged_at unset;
    they take no part in release decisions.
    """
    data = _api(f"repos/{repo}/pulls?state=closed&base={base}&per_page=100")
    changes: list[ChangeRecord] = []
    for pr in data or []:
        closed_at = _parse_time(pr.get("closed_at"))
        if since is not None and (closed_at is None or closed_at <= since):
            continue
        changes.append(
            ChangeRecord(
                number=pr["number"],
                title=pr.get("title", ""),
                author=(pr.get("user") or {}).get("login", ""),
                labels=[label["name"] for label in pr.get("labels", [])],
                merged_at=_parse_time(pr.get("merged_at")),
            )
        )
    return changes


def create_pull_request(repo: str, branch: str, base: str) -> int:
    """Open a pull request from branch into base and return its number."""
    data = _api(
        f"repos/{repo}/pulls",
        "--method",
        "POST",
        "-f",
        f"title={PR_TITLE}",
        "-f",
        f"head={branch}",
        "-f",
        f"base={base}",
        "-f",
        f"body={PR_BODY}",
    )
    number = data.get("number") if isinstance(data, dict) else None
    if not number:
        raise GitHubError("PR creation returned no number")
    info(f"PR created successfully: #{number}")
    return int(number)


def get_pull_request_state(repo: str, number: int) -> str:
    """Return the state ("open", "closed") of a pull request."""
    data = _api(f"repos/{repo}/pulls/{number}")
    return str((data or {}).get("state", "unknown"))
