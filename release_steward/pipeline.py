"""Dependency update pipeline: check → plan → apply → report → PR.

This module orchestrates the three release-steward commands:
1. check-dependencies: print the status of every allowed dependency
2. generate-report: write the full dependency and release-readiness report
3. update-dependencies: update allowed dependencies, then either write a
   dry-run report or open a pull request with the changes

All of them run against the project in the current directory.
"""

from __future__ import annotations

import subprocess
from datetime import datetime
from pathlib import Path

from .config import Settings, load_settings, split_base
from .deps import read_declared_versions, rewrite_dependency
from .exceptions import GitError, GitHubError, PreflightError
from .github import (
    create_pull_request,
    fetch_closed_changes,
    get_latest_release,
    get_pull_request_state,
    get_repo_name,
)
from .models import ChangeRecord, PendingUpdates, ReleaseInfo, ReportKind, UpdatePlan
from .plan import apply_plan, build_plan
from .registry import PyPIClient
from .release import classify_release, merged_only
from .report import render, write_report
from .shell import CommandRunner, gh, git, info, run, step, warn, which
from .versions import next_version_or_placeholder

MANIFEST = "pyproject.toml"
LOCKFILE = "uv.lock"


def build_branch_name(override: str | None, next_version: str) -> str:
    """Name of the update branch: the override if given, else update-dependencies-<next>."""
    if override and override.strip():
        return override.strip()
    return f"update-dependencies-{next_version}"


def detect_default_remote_branch(remote: str) -> str:
    """Find the default branch of a remote, as "<remote>/<branch>".

    Tries the remote HEAD symbolic ref first, then parses the "HEAD branch"
    line of `git remote show`. Returns "" if neither works.
    """
    head = git(
        "symbolic-ref", "--quiet", "--short", f"refs/remotes/{remote}/HEAD", check=False
    )
    if head:
        return head

    for line in git("remote", "show", remote, check=False).splitlines():
        line = line.strip()
        if line.startswith("HEAD branch:"):
            name = line.split(":", 1)[1].strip()
            if name and name != "(unknown)":
                return f"{remote}/{name}"
    return ""


def resolve_base(configured: str, override: str | None) -> tuple[str, str]:
    """Pick the remote and branch that update branches are based on.

    An explicit override wins and must exist. Otherwise the configured base
    is used; if its remote is missing, fall back to origin and its default
    branch.

    Raises:
        PreflightError: If the override is malformed or no usable remote exists.
    """
    remotes = set(git("remote", check=False).split())

    if override and override.strip():
        try:
            remote, branch = split_base(override)
        except ValueError:
            raise PreflightError(
                ["invalid --remote value; expected <remote>/<branch>"]
            ) from None
        if remote not in remotes:
            raise PreflightError([f"remote '{remote}' not found; configure it first"])
        return remote, branch

    remote, branch = split_base(configured)
    if remote in remotes:
        return remote, branch

    if "origin" not in remotes:
        raise PreflightError([f"remote '{remote}' not found; configure it first"])
    detected = detect_default_remote_branch("origin")
    if detected:
        branch = detected.split("/", 1)[1]
    info(f"Remote '{remote}' not found, using origin/{branch}")
    return "origin", branch


def run_preflight_checks(root: Path, require_pr: bool) -> None:
    """Validate the environment before any change is attempted.

    Raises:
        PreflightError: Listing every problem found.
    """
    step("Running preflight checks")
    issues: list[str] = []

    if not (root / MANIFEST).exists():
        issues.append(f"missing {MANIFEST} in project root")
    if not which("git"):
        issues.append("git not found in PATH")
    if not which("gh"):
        issues.append("gh not found in PATH")

    try:
        if git("status", "--porcelain"):
            issues.append("working tree not clean; commit or stash changes first")
    except (subprocess.CalledProcessError, OSError) as exc:
        issues.append(f"failed to check git status: {exc}")

    if not git("remote", "get-url", "origin", check=False):
        issues.append("git remote 'origin' not configured")

    if require_pr:
        try:
            gh("auth", "status")
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError):
            issues.append("gh is not authenticated (required for PR creation)")

    if issues:
        raise PreflightError(issues)
    info("All checks passed")


def _registry(settings: Settings) -> PyPIClient:
    return PyPIClient(settings.registry_url, settings.registry_timeout)


def _fetch_changes(repo: str, release: ReleaseInfo, base_branch: str) -> list[ChangeRecord]:
    """Fetch merged changes since release; a failure is reported, not fatal."""
    try:
        return merged_only(fetch_closed_changes(repo, release.published_at, base_branch))
    except GitHubError as exc:
        warn(f"Error fetching merged PRs: {exc}")
        return []


def _print_changes(changes: list[ChangeRecord]) -> None:
    step("Merged PRs since the latest release")
    if not changes:
        info("None")
    for change in changes:
        info(change.describe())


def check_dependencies() -> UpdatePlan:
    """Print the status of every allowed dependency."""
    pyproject = Path.cwd() / MANIFEST
    settings = load_settings(pyproject)
    declared = read_declared_versions(pyproject)
    plan = build_plan(declared, settings.policy, _registry(settings), settings.max_workers)

    step("Current dependencies")
    for c in plan.candidates:
        if c.latest is None:
            info(f"{c.name}: {c.current} (❌ {c.error})")
        elif c.will_update:
            info(f"{c.name}: {c.current} (🔄 Update available: {c.current} → {c.latest})")
        else:
            info(f"{c.name}: {c.current} (✅ Up to date)")
    return plan


def generate_report(
    output: str | None = None, *, generated_at: datetime | None = None
) -> Path:
    """Write the full dependency report and return its path."""
    root = Path.cwd()
    pyproject = root / MANIFEST
    settings = load_settings(pyproject)
    repo = get_repo_name()
    _, base_branch = split_base(settings.base)

    declared = read_declared_versions(pyproject)
    plan = build_plan(declared, settings.policy, _registry(settings), settings.max_workers)
    release = get_latest_release(repo)
    changes = _fetch_changes(repo, release, base_branch)

    text = render(
        ReportKind.FULL,
        repo,
        plan.candidates,
        changes,
        release.tag,
        declared=declared,
        generated_at=generated_at,
    )
    path = root / (output or settings.report)
    write_report(path, text)
    return path


def _checked(runner: CommandRunner, *args: str) -> None:
    result = runner(*args)
    if result.returncode != 0:
        raise GitError(f"`{' '.join(args)}` failed with exit code {result.returncode}")


def open_update_pr(
    repo: str,
    base_remote: str,
    base_branch: str,
    next_version: str,
    *,
    new_branch: str | None = None,
    runner: CommandRunner | None = None,
) -> int:
    """Commit the manifest changes on a fresh branch, push it, and open a PR.

    Returns:
        The pull request number.
    """
    runner = runner or CommandRunner()
    branch = build_branch_name(new_branch, next_version)
    step(f"Creating pull request from {branch}")

    files = [MANIFEST]
    if (Path.cwd() / LOCKFILE).exists():
        files.append(LOCKFILE)

    _checked(runner, "git", "checkout", "-B", branch, f"{base_remote}/{base_branch}")
    _checked(runner, "git", "add", *files)
    _checked(
        runner,
        "git",
        "commit",
        "-m",
        f"chore({next_version}): update dependencies to latest versions",
    )
    _checked(runner, "git", "push", "origin", branch, "--force-with-lease")

    number = create_pull_request(repo, branch, base_branch)
    try:
        info(f"PR status: {get_pull_request_state(repo, number)}")
    except GitHubError as exc:
        warn(f"Failed to get PR status: {exc}")
    return number


def update_dependencies(
    *,
    dry_run: bool = False,
    create_pr: bool = False,
    remote: str | None = None,
    new_branch: str | None = None,
    runner: CommandRunner | None = None,
    generated_at: datetime | None = None,
) -> Path | None:
    """Execute the full update flow.

    Args:
        dry_run: Compute and report updates without touching the manifest.
        create_pr: Open a pull request with the updated manifest.
        remote: Base override as "<remote>/<branch>".
        new_branch: Override for the generated branch name.
        runner: Executes branch/commit/push commands.
        generated_at: Timestamp for the dry-run report.

    Returns:
        Path of the dry-run report when one was written, else None.
    """
    root = Path.cwd()
    pyproject = root / MANIFEST

    repo = get_repo_name()
    run_preflight_checks(root, require_pr=create_pr)
    settings = load_settings(pyproject)
    base_remote, base_branch = resolve_base(settings.base, remote)

    git("fetch", base_remote, base_branch, check=False)
    if not git("rev-parse", "--verify", f"refs/remotes/{base_remote}/{base_branch}", check=False):
        raise PreflightError([f"base '{base_remote}/{base_branch}' not found after fetch"])

    if dry_run:
        info("Running in Dry Run mode (no changes will be made)")
    info(f"Detected repository: {repo}")

    declared = read_declared_versions(pyproject)
    plan = build_plan(declared, settings.policy, _registry(settings), settings.max_workers)
    pending = PendingUpdates()
    applied = apply_plan(
        plan,
        lambda c: rewrite_dependency(pyproject, c.name, c.latest or c.current),
        dry_run=dry_run,
        pending=pending,
    )

    release = get_latest_release(repo)
    changes = _fetch_changes(repo, release, base_branch)
    _print_changes(changes)

    if not applied and not changes:
        info(
            "No dependency updates and no merged changes since last release;"
            " no new release needed."
        )
        return None

    if dry_run:
        text = render(
            ReportKind.DRY_RUN,
            repo,
            pending.sorted(),
            changes,
            release.tag,
            generated_at=generated_at,
        )
        path = root / settings.dry_run_report
        write_report(path, text)
        return path

    if applied and (root / LOCKFILE).exists():
        try:
            result = run("uv", "lock", check=False)
        except OSError as exc:
            warn(f"failed running 'uv lock': {exc}")
        else:
            if result.returncode != 0:
                warn(f"failed running 'uv lock' (exit code {result.returncode})")

    if create_pr:
        next_ver = next_version_or_placeholder(release.tag, classify_release(changes))
        open_update_pr(
            repo,
            base_remote,
            base_branch,
            next_ver,
            new_branch=new_branch,
            runner=runner,
        )
    return None
