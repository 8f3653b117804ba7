"""Markdown reports.

Rendering is a pure function of its inputs: the caller resolves dependencies,
merged changes and the release tag, and injects the generation time. Writing
the result to disk is a separate step.

Rows and lists are always sorted by dependency name so that rendering the
same inputs twice produces identical text.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from pathlib import Path

from .exceptions import ReportWriteError
from .models import ChangeRecord, ReportKind, UpdateCandidate, UpdateStatus
from .release import classify_release, merged_only
from .shell import info
from .versions import next_version_or_placeholder

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

STATUS_LABELS = {
    UpdateStatus.UP_TO_DATE: "✅ Up to date",
    UpdateStatus.UPDATE_AVAILABLE: "🔄 Update available",
    UpdateStatus.ERROR: "❌ Error",
}
NOT_MANAGED_LABEL = "⏸ Not managed"


def render(
    kind: ReportKind,
    repo: str,
    candidates: Sequence[UpdateCandidate],
    changes: Sequence[ChangeRecord],
    tag: str,
    *,
    declared: Mapping[str, str] | None = None,
    generated_at: datetime | None = None,
) -> str:
    """Render a report of the given kind.

    Args:
        kind: DRY_RUN lists only pending updates; FULL renders the status
              table, activity, release analysis and recommendations.
        repo: Repository slug ("owner/name").
        candidates: Update candidates from the plan.
        changes: Pull requests closed since the last release; unmerged ones
                 are left out.
        tag: Tag of the latest release.
        declared: All declared dependencies. Those without a candidate are
                  listed as not managed in the FULL report.
        generated_at: Generation time; defaults to now.
    """
    generated_at = generated_at or datetime.now()
    if kind is ReportKind.DRY_RUN:
        return render_dry_run(repo, candidates, changes, tag, generated_at=generated_at)
    return render_full(
        repo, candidates, changes, tag, declared=declared, generated_at=generated_at
    )


def _release_lines(merged: Sequence[ChangeRecord], tag: str) -> tuple[str, str]:
    release_type = classify_release(merged)
    return release_type.value, next_version_or_placeholder(tag, release_type)


def render_dry_run(
    repo: str,
    candidates: Sequence[UpdateCandidate],
    changes: Sequence[ChangeRecord],
    tag: str,
    *,
    generated_at: datetime,
) -> str:
    lines = [
        "# Dry-Run Report",
        "",
        f"**Repository:** {repo}",
        f"**Generated On:** {generated_at.strftime(TIMESTAMP_FORMAT)}",
        "",
    ]

    updates = sorted((c for c in candidates if c.will_update), key=lambda c: c.name)
    if not updates:
        lines.append("✅ All dependencies are already up to date!")
    else:
        lines.append("### Dependencies that would be updated:")
        lines.append("")
        lines.extend(f"- `{c.name}`: **{c.current} → {c.latest}**" for c in updates)

    merged = merged_only(changes)
    if merged:
        lines.append("")
        lines.append("### Merged PRs since the latest release:")
        lines.append("")
        lines.extend(c.describe() for c in merged)
        release_type, next_ver = _release_lines(merged, tag)
        lines.append("")
        lines.append(f"### Decision on new release: {release_type}")
        lines.append(f"Next possible version: {next_ver}")

    return "\n".join(lines) + "\n"


def _status_rows(
    candidates: Sequence[UpdateCandidate], declared: Mapping[str, str]
) -> list[str]:
    by_name = {c.name: c for c in candidates}
    rows: list[str] = []
    for name in sorted(set(by_name) | set(declared)):
        c = by_name.get(name)
        if c is None:
            rows.append(f"| {name} | {declared[name]} | - | {NOT_MANAGED_LABEL} |")
            continue
        latest = c.latest if c.latest is not None else "Error"
        rows.append(f"| {name} | {c.current} | {latest} | {STATUS_LABELS[c.status]} |")
    return rows


def render_full(
    repo: str,
    candidates: Sequence[UpdateCandidate],
    changes: Sequence[ChangeRecord],
    tag: str,
    *,
    declared: Mapping[str, str] | None = None,
    generated_at: datetime,
) -> str:
    declared = declared or {}
    lines = [
        "# Dependency Report",
        "",
        f"**Repository:** {repo}",
        f"**Generated On:** {generated_at.strftime(TIMESTAMP_FORMAT)}",
        f"**Current Version:** {tag}",
        "",
        "## Dependency Status",
        "",
        "| Module | Current Version | Latest Version | Status |",
        "|--------|----------------|----------------|--------|",
        *_status_rows(candidates, declared),
    ]

    updates_available = sum(1 for c in candidates if c.will_update)
    total = len(set(declared) | {c.name for c in candidates})
    lines.append("")
    lines.append(
        f"**Summary:** {updates_available} out of {total} dependencies have updates available."
    )

    lines.append("")
    lines.append("## Recent Activity")
    lines.append("")
    merged = merged_only(changes)
    if merged:
        lines.append("### Merged PRs since the latest release:")
        lines.append("")
        lines.extend(f"- {c.describe()}" for c in merged)
        release_type, next_ver = _release_lines(merged, tag)
        lines.append("")
        lines.append("### Release Analysis")
        lines.append(f"- **Recommended release type:** {release_type}")
        lines.append(f"- **Next version:** {next_ver}")
    else:
        lines.append("No merged PRs found since the latest release.")

    lines.append("")
    lines.append("## Recommendations")
    lines.append("")
    items: list[str] = []
    if updates_available:
        items.append(
            "**Update Dependencies:** Consider updating the outdated dependencies"
            " to their latest versions."
        )
        items.append("**Run Tests:** After updating dependencies, ensure all tests pass.")
        items.append(
            "**Review Changes:** Check for any breaking changes in the updated dependencies."
        )
    else:
        lines.append("✅ All dependencies are up to date. No immediate action required.")
    if merged:
        items.append(
            "**Consider Release:** Based on the merged PRs, consider creating a new release."
        )
    if items and not updates_available:
        lines.append("")
    lines.extend(f"{i}. {item}" for i, item in enumerate(items, start=1))

    return "\n".join(lines) + "\n"


def write_report(path: Path, text: str) -> None:
    """Write a rendered report to disk.

    Raises:
        ReportWriteError: If the file cannot be written.
    """
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ReportWriteError(f"failed to write report {path}: {exc}") from exc
    info(f"✅ Report generated: {path}")
